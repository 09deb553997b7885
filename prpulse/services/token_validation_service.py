"""Checks which read permissions a GitHub token grants."""

import asyncio
import logging
from typing import Any, Optional

from ..errors import CredentialError, PRPulseError, ProtocolError
from ..graphql_client import GitHubGraphQLClient
from ..models import PermissionCheck, PermissionsState, PermissionStatus
from ..queries import COMMENTS_PROBE, COMMIT_STATUSES_PROBE, PULL_REQUESTS_PROBE, REVIEWS_PROBE

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 10.0


class TokenValidationService:
    """Runs four independent probe queries against the GraphQL API."""

    def __init__(self, client: GitHubGraphQLClient):
        self.client = client

    async def validate(self) -> PermissionsState:
        """
        Probe pull request, commit status, review and comment access.

        All probes run concurrently; a failing probe never prevents the
        others from reporting.

        Returns:
            A fresh PermissionsState.
        """
        (pull_requests, viewer), commit_statuses, reviews, comments = await asyncio.gather(
            self._check_pull_requests(),
            self._check_commit_statuses(),
            self._check_reviews(),
            self._check_comments(),
        )

        state = PermissionsState(
            pull_requests=pull_requests,
            commit_statuses=commit_statuses,
            reviews=reviews,
            comments=comments,
            viewer=viewer,
        )
        logger.info(
            "Token validation for %s: %s",
            viewer or "unknown viewer",
            ", ".join(f"{check.name}={check.status.value}" for check in state.checks),
        )
        return state

    async def _check_pull_requests(self) -> tuple[PermissionCheck, Optional[str]]:
        name = "Pull Requests"
        description = "View your open pull requests"
        scope = "repo or public_repo"
        try:
            data = await self.client.execute(PULL_REQUESTS_PROBE, strict=True)
        except PRPulseError as e:
            return _check(name, description, _failure_status(e), str(e), scope), None

        viewer = data.get("viewer")
        login = viewer.get("login") if isinstance(viewer, dict) else None
        if isinstance(login, str) and login:
            return _check(name, description, PermissionStatus.GRANTED), login
        return _check(name, description, PermissionStatus.DENIED, "Unable to read pull requests", scope), None

    async def _check_commit_statuses(self) -> PermissionCheck:
        name = "CI/CD Status"
        description = "View commit status checks and CI results"
        scope = "repo:status"
        try:
            data = await self.client.execute(COMMIT_STATUSES_PROBE, strict=True)
        except ProtocolError as e:
            # Only an error naming the rollup field proves the scope is missing.
            if "statusCheckRollup" in str(e):
                return _check(name, description, PermissionStatus.DENIED, "Missing commit status permission", scope)
            return _check(name, description, PermissionStatus.UNKNOWN, str(e), scope)
        except PRPulseError as e:
            return _check(name, description, _failure_status(e), str(e), scope)

        if _has_pull_request_nodes(data):
            return _check(name, description, PermissionStatus.GRANTED)
        return _check(name, description, PermissionStatus.DENIED, "Unable to verify commit status access", scope)

    async def _check_reviews(self) -> PermissionCheck:
        return await self._check_nested_access(
            REVIEWS_PROBE,
            name="Reviews",
            description="View PR review states and approvals",
            missing_message="Unable to verify review access",
        )

    async def _check_comments(self) -> PermissionCheck:
        return await self._check_nested_access(
            COMMENTS_PROBE,
            name="Comments",
            description="View PR comments and discussions",
            missing_message="Unable to verify comments access",
        )

    async def _check_nested_access(
        self, query: str, name: str, description: str, missing_message: str
    ) -> PermissionCheck:
        scope = "repo"
        try:
            data = await self.client.execute(query, strict=True)
        except PRPulseError as e:
            return _check(name, description, _failure_status(e), str(e), scope)

        if _has_pull_request_nodes(data):
            return _check(name, description, PermissionStatus.GRANTED)
        return _check(name, description, PermissionStatus.DENIED, missing_message, scope)


def _failure_status(error: PRPulseError) -> PermissionStatus:
    """Rejections and GraphQL errors are denials; network trouble proves nothing."""
    if isinstance(error, (CredentialError, ProtocolError)):
        return PermissionStatus.DENIED
    return PermissionStatus.UNKNOWN


def _has_pull_request_nodes(data: dict[str, Any]) -> bool:
    viewer = data.get("viewer")
    if not isinstance(viewer, dict):
        return False
    pull_requests = viewer.get("pullRequests")
    return isinstance(pull_requests, dict) and isinstance(pull_requests.get("nodes"), list)


def _check(
    name: str,
    description: str,
    status: PermissionStatus,
    error_message: Optional[str] = None,
    required_scope: Optional[str] = None,
) -> PermissionCheck:
    return PermissionCheck(
        name=name,
        description=description,
        status=status,
        error_message=error_message,
        required_scope=required_scope,
    )
