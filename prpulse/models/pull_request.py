"""Pull request domain models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

PREVIEW_LENGTH = 100


class CIStatus(Enum):
    """Rolled-up CI state of a PR's head commit."""

    SUCCESS = "success"
    FAILURE = "failure"
    PENDING = "pending"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        return _CI_LABELS[self]


_CI_LABELS = {
    CIStatus.SUCCESS: "Passing",
    CIStatus.FAILURE: "Failing",
    CIStatus.PENDING: "Running",
    CIStatus.UNKNOWN: "No Checks",
}


class ReviewState(Enum):
    """Aggregated review verdict from reviewers other than the viewer."""

    APPROVED = "approved"
    CHANGES_REQUESTED = "changesRequested"
    PENDING = "pending"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        return _REVIEW_LABELS[self]


_REVIEW_LABELS = {
    ReviewState.APPROVED: "Approved",
    ReviewState.CHANGES_REQUESTED: "Changes Requested",
    ReviewState.PENDING: "Review Pending",
    ReviewState.UNKNOWN: "No Reviews",
}


@dataclass(frozen=True)
class PRComment:
    """A top-level PR comment or one comment of a review thread."""

    id: str
    author: str
    body: str
    created_at: datetime
    url: str | None = None

    @property
    def preview(self) -> str:
        """Single-line excerpt of the body, truncated with an ellipsis."""
        trimmed = " ".join(self.body.splitlines()).strip()
        if len(trimmed) > PREVIEW_LENGTH:
            return trimmed[:PREVIEW_LENGTH] + "…"
        return trimmed


@dataclass(frozen=True)
class PRCommentThread:
    """Review comments anchored to the same place in the diff."""

    id: str
    comments: tuple[PRComment, ...] = ()

    @property
    def latest_comment(self) -> Optional[PRComment]:
        if not self.comments:
            return None
        return max(self.comments, key=lambda comment: comment.created_at)


@dataclass(frozen=True)
class PRReview:
    """A submitted (non-comment) review."""

    id: str
    author: str
    state: str
    created_at: datetime

    @property
    def label(self) -> str:
        return {
            "APPROVED": "Approved",
            "CHANGES_REQUESTED": "Changes Requested",
            "DISMISSED": "Dismissed",
            "PENDING": "Pending",
        }.get(self.state, "Review")


@dataclass(frozen=True)
class PullRequest:
    """One tracked pull request, rebuilt from the API on every poll."""

    id: str
    number: int
    title: str
    repo_full_name: str
    html_url: str
    updated_at: datetime
    author_login: str | None = None
    comment_count: int = 0
    is_draft: bool = False
    ci_status: CIStatus = CIStatus.UNKNOWN
    failed_checks: tuple[str, ...] = ()
    review_state: ReviewState = ReviewState.UNKNOWN
    has_conflicts: bool = False
    recent_reviews: tuple[PRReview, ...] = ()
    recent_comments: tuple[PRComment, ...] = ()
    review_threads: tuple[PRCommentThread, ...] = ()
    is_requested_reviewer: bool = False
    is_reviewed_by_me: bool = False
    has_my_comment: bool = False

    @property
    def key(self) -> str:
        """Composite identity used to deduplicate PRs across queries."""
        return pull_request_key(self.repo_full_name, self.number)

    @property
    def repo_name(self) -> str:
        return self.repo_full_name.split("/")[-1]

    @property
    def owner_name(self) -> str:
        if "/" not in self.repo_full_name:
            return ""
        return self.repo_full_name.split("/")[0]

    @property
    def all_comments(self) -> list[PRComment]:
        """Top-level and review-thread comments, newest first."""
        threaded = [comment for thread in self.review_threads for comment in thread.comments]
        return sorted(
            [*self.recent_comments, *threaded],
            key=lambda comment: comment.created_at,
            reverse=True,
        )

    @property
    def row_identity(self) -> str:
        """Changes whenever the PR is updated, unlike ``id``."""
        return f"{self.id}-{self.updated_at.timestamp()}"


def pull_request_key(repo_full_name: str, number: int) -> str:
    return f"{repo_full_name}#{number}"
