"""Built-in sample pull requests for running without a GitHub token."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from ..models import CIStatus, PRComment, PullRequest, ReviewState
from .merge import sort_pull_requests
from .pull_request_service import PullRequestSnapshot

MOCK_VIEWER_LOGIN = "octocat"


def mock_snapshot(now: Optional[datetime] = None) -> PullRequestSnapshot:
    """Return a fixed collection covering every filter and health state."""
    now = now or datetime.now(timezone.utc)

    def ago(**kwargs) -> datetime:
        return now - timedelta(**kwargs)

    def comment(comment_id: str, author: str, body: str, created_at: datetime) -> PRComment:
        return PRComment(id=comment_id, author=author, body=body, created_at=created_at)

    pull_requests = [
        PullRequest(
            id="mock-1",
            number=142,
            title="feat: Add dark mode support across all components",
            repo_full_name="acme/frontend",
            html_url="https://github.com/acme/frontend/pull/142",
            updated_at=ago(minutes=30),
            author_login=MOCK_VIEWER_LOGIN,
            comment_count=3,
            ci_status=CIStatus.SUCCESS,
            review_state=ReviewState.APPROVED,
            recent_comments=(
                comment("mock-c2", "mike", "Approved, tested on Safari and Chrome.", ago(minutes=30)),
                comment("mock-c1", "sarah", "LGTM! Nice work on the color tokens.", ago(hours=1)),
            ),
        ),
        PullRequest(
            id="mock-2",
            number=87,
            title="fix: Resolve memory leak in WebSocket connection handler",
            repo_full_name="acme/backend-api",
            html_url="https://github.com/acme/backend-api/pull/87",
            updated_at=ago(hours=2),
            author_login=MOCK_VIEWER_LOGIN,
            comment_count=5,
            ci_status=CIStatus.FAILURE,
            failed_checks=("Build / test-linux", "CI / integration-tests"),
            review_state=ReviewState.CHANGES_REQUESTED,
            has_conflicts=True,
            recent_comments=(
                comment(
                    "mock-c3",
                    "alex",
                    "The connection pool still leaks under high concurrency. See my inline comments.",
                    ago(hours=2),
                ),
            ),
        ),
        PullRequest(
            id="mock-3",
            number=201,
            title="chore: Bump dependencies and fix security advisories",
            repo_full_name="acme/infrastructure",
            html_url="https://github.com/acme/infrastructure/pull/201",
            updated_at=ago(minutes=10),
            author_login="jordan",
            ci_status=CIStatus.PENDING,
            is_requested_reviewer=True,
        ),
        PullRequest(
            id="mock-4",
            number=55,
            title="WIP: Experiment with new caching strategy for GraphQL queries",
            repo_full_name="acme/frontend",
            html_url="https://github.com/acme/frontend/pull/55",
            updated_at=ago(days=1),
            author_login=MOCK_VIEWER_LOGIN,
            comment_count=1,
            is_draft=True,
            recent_comments=(
                comment("mock-c4", "karim", "Still exploring, don't review yet", ago(days=1)),
            ),
        ),
        PullRequest(
            id="mock-5",
            number=33,
            title="feat: Add OAuth2 PKCE flow for mobile clients",
            repo_full_name="acme/auth-service",
            html_url="https://github.com/acme/auth-service/pull/33",
            updated_at=ago(minutes=10),
            author_login="dana",
            comment_count=8,
            ci_status=CIStatus.SUCCESS,
            review_state=ReviewState.APPROVED,
            is_reviewed_by_me=True,
            has_my_comment=True,
            recent_comments=(
                comment("mock-c5", MOCK_VIEWER_LOGIN, "Ship it!", ago(minutes=10)),
            ),
        ),
        PullRequest(
            id="mock-6",
            number=12,
            title="fix: Rate limiter bypassed when API key rotates mid-request",
            repo_full_name="acme/backend-api",
            html_url="https://github.com/acme/backend-api/pull/12",
            updated_at=ago(hours=1, minutes=30),
            author_login="jordan",
            comment_count=2,
            ci_status=CIStatus.FAILURE,
            failed_checks=("CI / lint",),
            has_my_comment=True,
            recent_comments=(
                comment(
                    "mock-c6",
                    MOCK_VIEWER_LOGIN,
                    "Can you add a test for the rotation edge case?",
                    ago(hours=1, minutes=30),
                ),
            ),
        ),
    ]

    return PullRequestSnapshot(
        pull_requests=tuple(sort_pull_requests(pull_requests)),
        viewer_login=MOCK_VIEWER_LOGIN,
    )
