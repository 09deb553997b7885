"""Service layer: field mapping, merging, classification and GitHub access."""

from .merge import merge_pull_requests
from .pull_request_service import PullRequestService, PullRequestSnapshot
from .token_store import FileTokenStore, MemoryTokenStore, TokenStore
from .token_validation_service import TokenValidationService

__all__ = [
    "FileTokenStore",
    "MemoryTokenStore",
    "PullRequestService",
    "PullRequestSnapshot",
    "TokenStore",
    "TokenValidationService",
    "merge_pull_requests",
]
