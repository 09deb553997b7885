"""Combines the involved and review-requested result sets."""

import dataclasses
import logging
from typing import Any, Iterable, Optional

from ..models import PullRequest
from .field_mapper import map_pull_request

logger = logging.getLogger(__name__)


def merge_pull_requests(
    involved_nodes: Iterable[Any],
    review_requested_nodes: Iterable[Any],
    viewer_login: Optional[str],
) -> list[PullRequest]:
    """
    Map both node lists and merge them into one deduplicated collection.

    Involved records are inserted first and win on conflict. A
    review-requested record for a PR already present only flips
    ``is_requested_reviewer`` on; otherwise it is inserted as-is.

    Args:
        involved_nodes: Nodes from the ``involves:@me`` search.
        review_requested_nodes: Nodes from the ``review-requested:@me`` search.
        viewer_login: Login of the authenticated user, if known.

    Returns:
        PRs sorted by ``updated_at`` descending, ties broken by ``owner/repo#number``.
    """
    by_key: dict[str, PullRequest] = {}
    dropped = 0

    for node in involved_nodes:
        pr = map_pull_request(node, viewer_login, is_requested_reviewer=False)
        if pr is None:
            dropped += 1
            continue
        by_key.setdefault(pr.key, pr)

    for node in review_requested_nodes:
        pr = map_pull_request(node, viewer_login, is_requested_reviewer=True)
        if pr is None:
            dropped += 1
            continue
        existing = by_key.get(pr.key)
        if existing is None:
            by_key[pr.key] = pr
        elif not existing.is_requested_reviewer:
            by_key[pr.key] = dataclasses.replace(existing, is_requested_reviewer=True)

    if dropped:
        logger.debug("Dropped %d malformed PR node(s)", dropped)

    return sort_pull_requests(by_key.values())


def sort_pull_requests(pull_requests: Iterable[PullRequest]) -> list[PullRequest]:
    # Two stable passes: key ascending, then newest first.
    ordered = sorted(pull_requests, key=lambda pr: pr.key)
    ordered.sort(key=lambda pr: pr.updated_at, reverse=True)
    return ordered
