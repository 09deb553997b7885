"""Converts raw GraphQL pull request nodes into PullRequest records."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from ..models import CIStatus, PRComment, PRCommentThread, PRReview, PullRequest, ReviewState

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Matched as case-insensitive substrings of the author login.
BOT_LOGIN_MARKERS = (
    "[bot]",
    "github-actions",
    "codecov",
    "dependabot",
    "renovate",
    "sonarcloud",
    "vercel",
    "netlify",
    "tuist",
    "reptile",
)

FAILING_CHECK_RUN_CONCLUSIONS = frozenset(
    {"FAILURE", "TIMED_OUT", "CANCELLED", "ACTION_REQUIRED", "STARTUP_FAILURE", "STALE"}
)
FAILING_STATUS_CONTEXT_STATES = frozenset({"FAILURE", "ERROR"})

_ROLLUP_STATES = {
    "SUCCESS": CIStatus.SUCCESS,
    "FAILURE": CIStatus.FAILURE,
    "ERROR": CIStatus.FAILURE,
    "PENDING": CIStatus.PENDING,
    "EXPECTED": CIStatus.PENDING,
}


@dataclass(frozen=True)
class CheckRunContext:
    name: str | None
    status: str | None
    conclusion: str | None


@dataclass(frozen=True)
class StatusContext:
    context: str | None
    state: str | None


@dataclass(frozen=True)
class UnrecognizedContext:
    type_name: str | None


RollupContext = CheckRunContext | StatusContext | UnrecognizedContext


@dataclass(frozen=True)
class ReviewSummary:
    """What the review list says about the viewer and everyone else."""

    review_state: ReviewState
    is_reviewed_by_me: bool
    commented_in_review: bool
    recent_reviews: tuple[PRReview, ...]


def map_pull_request(
    node: Any,
    viewer_login: Optional[str],
    is_requested_reviewer: bool = False,
) -> Optional[PullRequest]:
    """
    Build a PullRequest from one search result node.

    Args:
        node: Raw ``PullRequest`` node from the GraphQL response.
        viewer_login: Login of the authenticated user, if known.
        is_requested_reviewer: Whether the node came from the review-requested query.

    Returns:
        The mapped PullRequest, or None when number, title, url or the
        repository name is missing.
    """
    if not isinstance(node, dict):
        return None

    number = node.get("number")
    title = node.get("title")
    url = node.get("url")
    repo_full_name = _get_path(node, "repository", "nameWithOwner")
    if not isinstance(number, int) or isinstance(number, bool):
        logger.debug("Dropping PR node without a number: %s", node.get("id"))
        return None
    if not isinstance(title, str) or not isinstance(url, str) or not isinstance(repo_full_name, str):
        logger.debug("Dropping PR node #%d with missing title, url or repository", number)
        return None

    pr_id = node.get("id") if isinstance(node.get("id"), str) else f"{repo_full_name}#{number}"

    ci_status, failed_checks = parse_ci_status(node)
    reviews = parse_reviews(node, viewer_login)

    recent_comments = tuple(
        sorted(
            parse_comments(_get_path(node, "comments", "nodes"), viewer_login),
            key=lambda comment: comment.created_at,
            reverse=True,
        )
    )
    review_threads = parse_review_threads(node, viewer_login)

    has_my_comment = reviews.commented_in_review or any(
        _is_viewer(comment.author, viewer_login)
        for comment in [*recent_comments, *(c for t in review_threads for c in t.comments)]
    )

    comment_count = _get_path(node, "comments", "totalCount")

    return PullRequest(
        id=pr_id,
        number=number,
        title=title,
        repo_full_name=repo_full_name,
        html_url=url,
        updated_at=parse_timestamp(node.get("updatedAt")) or EPOCH,
        author_login=_str_or_none(_get_path(node, "author", "login")),
        comment_count=comment_count if isinstance(comment_count, int) else 0,
        is_draft=node.get("isDraft") is True,
        ci_status=ci_status,
        failed_checks=failed_checks,
        review_state=reviews.review_state,
        has_conflicts=node.get("mergeable") == "CONFLICTING",
        recent_reviews=reviews.recent_reviews,
        recent_comments=recent_comments,
        review_threads=review_threads,
        is_requested_reviewer=is_requested_reviewer,
        is_reviewed_by_me=reviews.is_reviewed_by_me,
        has_my_comment=has_my_comment,
    )


def parse_ci_status(node: dict[str, Any]) -> tuple[CIStatus, tuple[str, ...]]:
    """Derive CI status and failing check names from the last commit's rollup."""
    commits = _as_list(_get_path(node, "commits", "nodes"))
    if not commits or not isinstance(commits[-1], dict):
        return CIStatus.UNKNOWN, ()

    rollup = _get_path(commits[-1], "commit", "statusCheckRollup")
    if not isinstance(rollup, dict):
        return CIStatus.UNKNOWN, ()

    state = rollup.get("state")
    ci_status = _ROLLUP_STATES.get(state.upper() if isinstance(state, str) else "", CIStatus.UNKNOWN)

    failed: set[str] = set()
    for raw in _as_list(_get_path(rollup, "contexts", "nodes")):
        context = parse_rollup_context(raw)
        if isinstance(context, CheckRunContext):
            if context.name and _upper(context.conclusion) in FAILING_CHECK_RUN_CONCLUSIONS:
                failed.add(context.name)
        elif isinstance(context, StatusContext):
            if context.context and _upper(context.state) in FAILING_STATUS_CONTEXT_STATES:
                failed.add(context.context)

    return ci_status, tuple(sorted(failed))


def parse_rollup_context(raw: Any) -> RollupContext:
    """Classify a rollup context node by its ``__typename``."""
    if not isinstance(raw, dict):
        return UnrecognizedContext(type_name=None)

    type_name = raw.get("__typename")
    if type_name == "CheckRun":
        return CheckRunContext(
            name=_str_or_none(raw.get("name")),
            status=_str_or_none(raw.get("status")),
            conclusion=_str_or_none(raw.get("conclusion")),
        )
    if type_name == "StatusContext":
        return StatusContext(
            context=_str_or_none(raw.get("context")),
            state=_str_or_none(raw.get("state")),
        )
    return UnrecognizedContext(type_name=_str_or_none(type_name))


def parse_reviews(node: dict[str, Any], viewer_login: Optional[str]) -> ReviewSummary:
    """
    Aggregate the review list.

    Reviews are assumed to be in chronological order, so a later review from
    the same author replaces an earlier one. COMMENTED reviews never change
    the aggregated state.
    """
    latest_by_author: dict[str, str] = {}
    is_reviewed_by_me = False
    commented_in_review = False
    recent: list[PRReview] = []

    for index, review in enumerate(_as_list(_get_path(node, "reviews", "nodes"))):
        if not isinstance(review, dict):
            continue
        state = review.get("state")
        login = _get_path(review, "author", "login")
        if not isinstance(state, str) or not isinstance(login, str) or not login:
            continue

        if _is_viewer(login, viewer_login):
            if state == "COMMENTED":
                commented_in_review = True
            elif state in ("APPROVED", "CHANGES_REQUESTED"):
                is_reviewed_by_me = True
        elif state != "COMMENTED":
            latest_by_author[login] = state

        created_at = parse_timestamp(review.get("createdAt"))
        if state != "COMMENTED" and created_at is not None:
            review_id = review.get("id") if isinstance(review.get("id"), str) else f"review-{login}-{index}"
            recent.append(PRReview(id=review_id, author=login, state=state, created_at=created_at))

    states = set(latest_by_author.values())
    if "CHANGES_REQUESTED" in states:
        review_state = ReviewState.CHANGES_REQUESTED
    elif "APPROVED" in states:
        review_state = ReviewState.APPROVED
    else:
        review_state = ReviewState.UNKNOWN

    recent.sort(key=lambda r: r.created_at, reverse=True)
    return ReviewSummary(
        review_state=review_state,
        is_reviewed_by_me=is_reviewed_by_me,
        commented_in_review=commented_in_review,
        recent_reviews=tuple(recent),
    )


def parse_comments(raw_comments: Any, viewer_login: Optional[str]) -> list[PRComment]:
    """Parse comment nodes, dropping bots and malformed entries. Order is preserved."""
    comments: list[PRComment] = []
    for raw in _as_list(raw_comments):
        if not isinstance(raw, dict):
            continue
        login = _get_path(raw, "author", "login")
        body = raw.get("body")
        created_at = parse_timestamp(raw.get("createdAt"))
        if not isinstance(login, str) or not login or not isinstance(body, str) or not body:
            continue
        if created_at is None:
            continue
        if is_bot_login(login) and not _is_viewer(login, viewer_login):
            continue

        comment_id = raw.get("id")
        if not isinstance(comment_id, str) or not comment_id:
            comment_id = f"{login}-{created_at.isoformat()}"

        comments.append(
            PRComment(
                id=comment_id,
                author=login,
                body=body,
                created_at=created_at,
                url=_str_or_none(raw.get("url")),
            )
        )
    return comments


def parse_review_threads(node: dict[str, Any], viewer_login: Optional[str]) -> tuple[PRCommentThread, ...]:
    """Parse review threads; threads left empty after bot filtering are dropped."""
    threads: list[PRCommentThread] = []
    for index, raw in enumerate(_as_list(_get_path(node, "reviewThreads", "nodes"))):
        if not isinstance(raw, dict):
            continue
        comments = parse_comments(_get_path(raw, "comments", "nodes"), viewer_login)
        if not comments:
            continue
        comments.sort(key=lambda comment: comment.created_at, reverse=True)
        thread_id = raw.get("id") if isinstance(raw.get("id"), str) else f"thread-{index}"
        threads.append(PRCommentThread(id=thread_id, comments=tuple(comments)))

    threads.sort(key=_thread_sort_key, reverse=True)
    return tuple(threads)


def is_bot_login(login: str) -> bool:
    """Whether the login belongs to a known bot or GitHub App."""
    lowered = login.lower()
    return any(marker in lowered for marker in BOT_LOGIN_MARKERS)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp as returned by GitHub (``2024-01-01T00:00:00Z``)."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _thread_sort_key(thread: PRCommentThread) -> datetime:
    latest = thread.latest_comment
    return latest.created_at if latest else EPOCH


def _is_viewer(login: Optional[str], viewer_login: Optional[str]) -> bool:
    if not login or not viewer_login:
        return False
    return login.lower() == viewer_login.lower()


def _get_path(obj: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _str_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _upper(value: Optional[str]) -> str:
    return value.upper() if value else ""
