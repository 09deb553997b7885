"""Token permission check results."""

from dataclasses import dataclass
from enum import Enum


class PermissionStatus(Enum):
    """Outcome of a single permission probe."""

    GRANTED = "granted"
    DENIED = "denied"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        return {
            PermissionStatus.GRANTED: "Access granted",
            PermissionStatus.DENIED: "Missing permission",
            PermissionStatus.UNKNOWN: "Unable to verify",
        }[self]


@dataclass(frozen=True)
class PermissionCheck:
    """Result of probing one capability of a token."""

    name: str
    description: str
    status: PermissionStatus
    error_message: str | None = None
    required_scope: str | None = None

    @property
    def granted(self) -> bool:
        return self.status is PermissionStatus.GRANTED


@dataclass(frozen=True)
class PermissionsState:
    """Snapshot of what a token may read, replaced on every validation."""

    pull_requests: PermissionCheck
    commit_statuses: PermissionCheck
    reviews: PermissionCheck
    comments: PermissionCheck
    viewer: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.pull_requests.granted

    @property
    def can_read_pull_requests(self) -> bool:
        return self.pull_requests.granted

    @property
    def can_read_commit_statuses(self) -> bool:
        return self.commit_statuses.granted

    @property
    def can_read_reviews(self) -> bool:
        return self.reviews.granted

    @property
    def can_read_comments(self) -> bool:
        return self.comments.granted

    @property
    def has_all_permissions(self) -> bool:
        return all(check.granted for check in self.checks)

    @property
    def has_minimum_permissions(self) -> bool:
        """Commit statuses are optional; everything else is required."""
        return self.pull_requests.granted and self.reviews.granted and self.comments.granted

    @property
    def checks(self) -> list[PermissionCheck]:
        return [self.pull_requests, self.commit_statuses, self.reviews, self.comments]
