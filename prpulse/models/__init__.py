"""Domain models for PR tracking."""

from .filters import PRFilter
from .permissions import PermissionCheck, PermissionsState, PermissionStatus
from .pull_request import (
    CIStatus,
    PRComment,
    PRCommentThread,
    PRReview,
    PullRequest,
    ReviewState,
    pull_request_key,
)

__all__ = [
    "CIStatus",
    "PRComment",
    "PRCommentThread",
    "PRFilter",
    "PRReview",
    "PermissionCheck",
    "PermissionStatus",
    "PermissionsState",
    "PullRequest",
    "ReviewState",
    "pull_request_key",
]
