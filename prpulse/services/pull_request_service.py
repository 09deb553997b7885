"""One fetch cycle: run both searches and merge their results."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..errors import ProtocolError
from ..graphql_client import GitHubGraphQLClient
from ..models import PullRequest
from ..queries import INVOLVED_QUERY, REVIEW_REQUESTED_QUERY
from .merge import merge_pull_requests

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PullRequestSnapshot:
    """Immutable result of a fetch, published as a whole."""

    pull_requests: tuple[PullRequest, ...] = ()
    viewer_login: str | None = None


class PullRequestService:
    """Fetches the viewer's open pull requests from GitHub."""

    def __init__(self, client: GitHubGraphQLClient):
        self.client = client

    async def fetch_snapshot(self) -> PullRequestSnapshot:
        """
        Run the involved and review-requested searches concurrently and merge them.

        Returns:
            Snapshot with the merged PRs and the viewer's login.

        Raises:
            PRPulseError: If either query fails or returns no search result;
                no partial result is returned.
        """
        logger.debug("Fetching involved and review-requested pull requests...")
        involved, review_requested = await asyncio.gather(
            self.client.execute(INVOLVED_QUERY, required="search"),
            self.client.execute(REVIEW_REQUESTED_QUERY, required="search"),
        )

        viewer_login = _viewer_login(involved) or _viewer_login(review_requested)
        involved_nodes = _search_nodes(involved)
        review_requested_nodes = _search_nodes(review_requested)

        pull_requests = merge_pull_requests(involved_nodes, review_requested_nodes, viewer_login)
        logger.info(
            "Fetched %d pull request(s) (%d involved, %d review requested) for %s",
            len(pull_requests),
            len(involved_nodes),
            len(review_requested_nodes),
            viewer_login or "unknown viewer",
        )
        return PullRequestSnapshot(pull_requests=tuple(pull_requests), viewer_login=viewer_login)


def _viewer_login(data: dict[str, Any]) -> Optional[str]:
    viewer = data.get("viewer")
    if isinstance(viewer, dict) and isinstance(viewer.get("login"), str) and viewer["login"]:
        return viewer["login"]
    return None


def _search_nodes(data: dict[str, Any]) -> list[Any]:
    search = data.get("search")
    nodes = search.get("nodes") if isinstance(search, dict) else None
    if not isinstance(nodes, list):
        raise ProtocolError("Unexpected GraphQL response")
    return nodes
