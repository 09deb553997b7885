"""Configuration management for PRPulse."""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, SecretStr

from .graphql_client import DEFAULT_GRAPHQL_URL, DEFAULT_TIMEOUT


class GitHubConfig(BaseModel):
    """GitHub API connection settings."""

    token: Optional[SecretStr] = Field(
        default=None, description="Personal access token; overrides token_file when set"
    )
    token_file: str = Field(
        default="~/.prpulse/token", description="File holding the personal access token"
    )
    graphql_url: str = DEFAULT_GRAPHQL_URL
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0, le=120, description="Request timeout in seconds")


class PollerConfig(BaseModel):
    """Refresh behavior settings."""

    poll_interval: int = Field(default=300, ge=30, description="Seconds between fetches")
    use_mock_data: bool = Field(default=False, description="Serve built-in sample PRs instead of GitHub")


class Config(BaseModel):
    """Root configuration model."""

    github: GitHubConfig = GitHubConfig()
    poller: PollerConfig = PollerConfig()


def load_config(config_path: str | Path = "config.yaml") -> Config:
    """Load and validate configuration from YAML file.

    Supports ${VAR_NAME} syntax for environment variable expansion.

    Args:
        config_path: Path to the configuration file.

    Returns:
        Validated Config object.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValidationError: If config is invalid.
        ValueError: If referenced environment variable is not set.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {path}\n"
            "Copy config.example.yaml to config.yaml and fill in your values."
        )

    with path.open() as f:
        raw_config = yaml.safe_load(f) or {}

    # Expand environment variables in the format ${VAR_NAME}
    def expand_env_vars(obj):
        if isinstance(obj, dict):
            return {k: expand_env_vars(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [expand_env_vars(item) for item in obj]
        elif isinstance(obj, str) and obj.startswith("${") and obj.endswith("}"):
            env_var = obj[2:-1]
            value = os.getenv(env_var)
            if value is None:
                raise ValueError(f"Environment variable '{env_var}' is not set")
            return value
        return obj

    raw_config = expand_env_vars(raw_config)

    return Config(**raw_config)
