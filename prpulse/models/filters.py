"""Named views over the current pull request collection."""

from enum import Enum


class PRFilter(Enum):
    """Filter tabs, in display order."""

    INBOX = "inbox"
    REVIEW = "review"
    DISCUSSED = "discussed"
    MINE = "mine"
    DRAFTS = "drafts"

    @property
    def label(self) -> str:
        return {
            PRFilter.INBOX: "Inbox",
            PRFilter.REVIEW: "To Review",
            PRFilter.DISCUSSED: "Discussed",
            PRFilter.MINE: "Mine",
            PRFilter.DRAFTS: "Drafts",
        }[self]
