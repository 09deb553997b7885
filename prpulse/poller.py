"""Periodic refresh of the viewer's pull requests."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

from .config import Config
from .errors import ConfigurationError, CredentialError, PRPulseError
from .graphql_client import GitHubGraphQLClient
from .models import CIStatus, PermissionsState, PRFilter, PullRequest
from .services import classifier
from .services.mock_data import mock_snapshot
from .services.pull_request_service import PullRequestService, PullRequestSnapshot
from .services.token_store import TokenStore
from .services.token_validation_service import PROBE_TIMEOUT, TokenValidationService

logger = logging.getLogger(__name__)

NO_TOKEN_MESSAGE = "No GitHub token configured"


class PullRequestPoller:
    """Owns the current PR collection and its refresh lifecycle.

    Readers only ever see a complete snapshot: a fetch replaces the snapshot
    in a single assignment, and a failed fetch leaves the previous one in
    place.
    """

    def __init__(
        self,
        config: Config,
        token_store: TokenStore,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self.token_store = token_store
        self._transport = transport

        self._snapshot = PullRequestSnapshot()
        self.is_loading = False
        self.error_message: Optional[str] = None
        self.needs_credential = False
        self.last_updated: Optional[datetime] = None
        self.permissions: Optional[PermissionsState] = None

        self._task: Optional[asyncio.Task] = None
        self._fetch_sequence = 0
        self._settled_sequence = 0
        self._published_sequence = 0
        self._in_flight = 0

    # Read-only surface for the presentation layer

    @property
    def snapshot(self) -> PullRequestSnapshot:
        return self._snapshot

    @property
    def pull_requests(self) -> tuple[PullRequest, ...]:
        return self._snapshot.pull_requests

    @property
    def viewer_login(self) -> Optional[str]:
        return self._snapshot.viewer_login

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def filtered(self, pr_filter: PRFilter) -> list[PullRequest]:
        snapshot = self._snapshot
        return classifier.filter_pull_requests(snapshot.pull_requests, pr_filter, snapshot.viewer_login)

    def count(self, pr_filter: PRFilter) -> int:
        return len(self.filtered(pr_filter))

    def filter_counts(self) -> dict[PRFilter, int]:
        snapshot = self._snapshot
        return classifier.filter_counts(snapshot.pull_requests, snapshot.viewer_login)

    @property
    def attention_count(self) -> int:
        snapshot = self._snapshot
        return classifier.attention_count(snapshot.pull_requests, snapshot.viewer_login)

    @property
    def overall_health(self) -> CIStatus:
        return classifier.overall_health(self._snapshot.pull_requests)

    @property
    def health_summary(self) -> str:
        snapshot = self._snapshot
        return classifier.health_summary(snapshot.pull_requests, snapshot.viewer_login)

    def last_updated_label(self, now: Optional[datetime] = None) -> str:
        """Relative age of the published snapshot, e.g. "5m ago"."""
        if self.last_updated is None:
            return ""
        now = now or datetime.now(timezone.utc)
        seconds = int((now - self.last_updated).total_seconds())
        if seconds < 60:
            return "just now"
        minutes = seconds // 60
        if minutes < 60:
            return f"{minutes}m ago"
        return f"{minutes // 60}h ago"

    # Lifecycle

    def start(self) -> asyncio.Task:
        """Fetch now, then every ``poll_interval`` seconds until stop().

        Must be called from a running event loop.
        """
        if self.is_running:
            return self._task

        logger.info("Starting poller (interval: %d seconds)", self.config.poller.poll_interval)
        self._task = asyncio.create_task(self._run())
        return self._task

    async def stop(self) -> None:
        """Cancel the pending refresh. An in-flight fetch is cancelled with it."""
        task, self._task = self._task, None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Poller stopped")

    async def _run(self) -> None:
        while True:
            await self.fetch()
            await asyncio.sleep(self.config.poller.poll_interval)

    async def fetch(self) -> bool:
        """
        Refresh the PR collection once.

        Manual and timer-driven refreshes share this entry point and may
        overlap. Each call takes a sequence number. A result is published
        unless a later-started fetch has already published; an error is
        recorded unless a later-started fetch has already finished.

        Returns:
            True if a new snapshot was published.
        """
        if self.config.poller.use_mock_data:
            self._publish(mock_snapshot())
            return True

        token = self.token_store.get()
        if not token:
            logger.warning(NO_TOKEN_MESSAGE)
            self.error_message = NO_TOKEN_MESSAGE
            self.needs_credential = True
            return False

        self._fetch_sequence += 1
        sequence = self._fetch_sequence
        self._in_flight += 1
        self.is_loading = True

        try:
            service = PullRequestService(self._client(token, self.config.github.timeout))
            snapshot = await service.fetch_snapshot()
        except PRPulseError as e:
            if sequence < self._settled_sequence:
                logger.debug("Ignoring error from superseded fetch #%d: %s", sequence, e)
                return False
            self._settled_sequence = sequence
            logger.warning("Fetch failed, keeping %d cached PR(s): %s", len(self.pull_requests), e)
            self.error_message = str(e)
            self.needs_credential = isinstance(e, (ConfigurationError, CredentialError))
            return False
        finally:
            self._in_flight -= 1
            self.is_loading = self._in_flight > 0

        if sequence < self._published_sequence:
            logger.debug("Discarding result of superseded fetch #%d", sequence)
            return False

        self._published_sequence = sequence
        self._settled_sequence = max(self._settled_sequence, sequence)
        self._publish(snapshot)
        return True

    async def validate_token(self, token: Optional[str] = None) -> PermissionsState:
        """
        Probe the permissions of ``token`` (the stored token by default).

        Raises:
            ConfigurationError: If no token is given or stored.
        """
        token = token or self.token_store.get()
        if not token:
            raise ConfigurationError(NO_TOKEN_MESSAGE)

        service = TokenValidationService(self._client(token, PROBE_TIMEOUT))
        self.permissions = await service.validate()
        return self.permissions

    def _publish(self, snapshot: PullRequestSnapshot) -> None:
        self._snapshot = snapshot
        self.last_updated = datetime.now(timezone.utc)
        self.error_message = None
        self.needs_credential = False
        logger.info(
            "Published %d pull request(s); %s",
            len(snapshot.pull_requests),
            classifier.health_summary(snapshot.pull_requests, snapshot.viewer_login),
        )

    def _client(self, token: str, timeout: float) -> GitHubGraphQLClient:
        return GitHubGraphQLClient(
            token=token,
            graphql_url=self.config.github.graphql_url,
            timeout=timeout,
            transport=self._transport,
        )
