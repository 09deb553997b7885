"""Filter and attention rules over a pull request collection.

Everything here is a pure function of the collection and the viewer's
login, so filters are recomputed on every read rather than stored.
"""

from typing import Iterable, Optional, Sequence

from ..models import CIStatus, PRFilter, PullRequest, ReviewState


def is_mine(pr: PullRequest, viewer_login: Optional[str]) -> bool:
    """Whether the viewer authored ``pr``, ignoring case."""
    if not viewer_login or not pr.author_login:
        return False
    return pr.author_login.lower() == viewer_login.lower()


def needs_attention(pr: PullRequest) -> bool:
    """Failing CI, conflicts or requested changes. Drafts never need attention."""
    if pr.is_draft:
        return False
    return (
        pr.ci_status is CIStatus.FAILURE
        or pr.has_conflicts
        or pr.review_state is ReviewState.CHANGES_REQUESTED
    )


def is_awaiting_my_review(pr: PullRequest) -> bool:
    """Review requested from the viewer and not yet given."""
    return pr.is_requested_reviewer and not pr.is_reviewed_by_me


def matches_filter(pr: PullRequest, pr_filter: PRFilter, viewer_login: Optional[str]) -> bool:
    """Whether ``pr`` belongs in ``pr_filter``. Filters other than inbox and review need a login."""
    if pr_filter is PRFilter.INBOX:
        if is_awaiting_my_review(pr):
            return True
        return bool(viewer_login) and is_mine(pr, viewer_login) and needs_attention(pr)

    if pr_filter is PRFilter.REVIEW:
        return is_awaiting_my_review(pr)

    if not viewer_login:
        return False

    if pr_filter is PRFilter.DISCUSSED:
        # PRs still waiting on the viewer's review belong to REVIEW only.
        if is_awaiting_my_review(pr):
            return False
        return pr.is_reviewed_by_me or pr.has_my_comment

    if pr_filter is PRFilter.MINE:
        return is_mine(pr, viewer_login) and not pr.is_draft

    if pr_filter is PRFilter.DRAFTS:
        return is_mine(pr, viewer_login) and pr.is_draft

    raise ValueError(f"Unknown filter: {pr_filter}")


def filter_pull_requests(
    pull_requests: Iterable[PullRequest],
    pr_filter: PRFilter,
    viewer_login: Optional[str],
) -> list[PullRequest]:
    """Return the PRs in ``pr_filter``, preserving collection order."""
    return [pr for pr in pull_requests if matches_filter(pr, pr_filter, viewer_login)]


def count_for(
    pull_requests: Iterable[PullRequest],
    pr_filter: PRFilter,
    viewer_login: Optional[str],
) -> int:
    """Number of PRs in ``pr_filter``."""
    return len(filter_pull_requests(pull_requests, pr_filter, viewer_login))


def filter_counts(
    pull_requests: Sequence[PullRequest],
    viewer_login: Optional[str],
) -> dict[PRFilter, int]:
    """Counts for every filter, keyed by filter."""
    return {pr_filter: count_for(pull_requests, pr_filter, viewer_login) for pr_filter in PRFilter}


def attention_count(pull_requests: Iterable[PullRequest], viewer_login: Optional[str]) -> int:
    """Number of the viewer's own PRs that need attention."""
    if not viewer_login:
        return 0
    return sum(1 for pr in pull_requests if is_mine(pr, viewer_login) and needs_attention(pr))


def overall_health(pull_requests: Sequence[PullRequest]) -> CIStatus:
    """
    Single status for the whole collection.

    Returns:
        UNKNOWN for an empty collection; FAILURE if any PR has failing CI,
        conflicts or requested changes; PENDING if any CI is still running;
        SUCCESS only when every PR is passing and approved; PENDING otherwise.
    """
    if not pull_requests:
        return CIStatus.UNKNOWN
    if any(
        pr.ci_status is CIStatus.FAILURE
        or pr.has_conflicts
        or pr.review_state is ReviewState.CHANGES_REQUESTED
        for pr in pull_requests
    ):
        return CIStatus.FAILURE
    if any(pr.ci_status is CIStatus.PENDING for pr in pull_requests):
        return CIStatus.PENDING
    if all(
        pr.ci_status is CIStatus.SUCCESS and pr.review_state is ReviewState.APPROVED
        for pr in pull_requests
    ):
        return CIStatus.SUCCESS
    return CIStatus.PENDING


def pending_count(pull_requests: Iterable[PullRequest]) -> int:
    """PRs whose CI is running or whose review is pending."""
    return sum(
        1
        for pr in pull_requests
        if pr.ci_status is CIStatus.PENDING or pr.review_state is ReviewState.PENDING
    )


def health_summary(pull_requests: Sequence[PullRequest], viewer_login: Optional[str]) -> str:
    """One-line summary shown above the PR list."""
    to_review = count_for(pull_requests, PRFilter.REVIEW, viewer_login)
    if to_review:
        return f"{to_review} to review"

    attention = attention_count(pull_requests, viewer_login)
    if attention == 1:
        return "1 needs attention"
    if attention:
        return f"{attention} need attention"

    pending = pending_count(pull_requests)
    if pending:
        return f"{pending} pending"

    return "All good"
