"""Storage for the GitHub personal access token."""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class TokenStore(ABC):
    """Key-value slot holding a single token."""

    @abstractmethod
    def get(self) -> Optional[str]:
        """Return the stored token, or None if there is none."""

    @abstractmethod
    def set(self, token: str) -> bool:
        """Store ``token``, replacing any previous one. Returns success."""

    @abstractmethod
    def delete(self) -> bool:
        """Remove the stored token. Succeeds when nothing was stored."""

    def has(self) -> bool:
        return bool(self.get())


class MemoryTokenStore(TokenStore):
    """Keeps the token in process memory only."""

    def __init__(self, token: Optional[str] = None):
        self._token = token.strip() if token else None

    def get(self) -> Optional[str]:
        return self._token or None

    def set(self, token: str) -> bool:
        token = token.strip()
        if not token:
            return False
        self._token = token
        return True

    def delete(self) -> bool:
        self._token = None
        return True


class FileTokenStore(TokenStore):
    """Keeps the token in a file readable only by the current user."""

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def get(self) -> Optional[str]:
        try:
            token = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Could not read token file %s: %s", self.path, e)
            return None
        return token or None

    def set(self, token: str) -> bool:
        token = token.strip()
        if not token:
            return False

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(token)
            os.chmod(self.path, 0o600)
        except OSError as e:
            logger.error("Could not write token file %s: %s", self.path, e)
            return False

        logger.info("Saved GitHub token to %s", self.path)
        return True

    def delete(self) -> bool:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return True
        except OSError as e:
            logger.error("Could not delete token file %s: %s", self.path, e)
            return False

        logger.info("Deleted GitHub token at %s", self.path)
        return True
