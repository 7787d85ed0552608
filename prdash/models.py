"""Data models for the pull request dashboard."""

import functools
import logging
import webbrowser
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class ReviewState(Enum):
    """The state of a pull request from the point of view of the current reviewer."""
    ACTIONABLE = 'actionable'
    WAITING = 'waiting'
    DRAFT = 'draft'
    SIGNED_OFF = 'signed_off'

    @property
    def label(self) -> str:
        return _STATE_LABELS[self]

    @property
    def priority(self) -> int:
        return _STATE_ORDER.index(self)


_STATE_ORDER = [ReviewState.ACTIONABLE, ReviewState.WAITING, ReviewState.DRAFT, ReviewState.SIGNED_OFF]

_STATE_LABELS = {
    ReviewState.ACTIONABLE: 'Actionable',
    ReviewState.WAITING: 'Waiting',
    ReviewState.DRAFT: 'Drafts',
    ReviewState.SIGNED_OFF: 'Signed Off',
}


class Vote(Enum):
    """A reviewer vote, using the Azure DevOps integer encoding."""
    APPROVED = 10
    APPROVED_WITH_SUGGESTIONS = 5
    NO_VOTE = 0
    WAITING_FOR_AUTHOR = -5
    REJECTED = -10

    @property
    def is_final(self) -> bool:
        """True when the reviewer has completed their part of the review."""
        return self in (Vote.APPROVED, Vote.APPROVED_WITH_SUGGESTIONS, Vote.REJECTED)

    @property
    def is_waiting(self) -> bool:
        return self is Vote.WAITING_FOR_AUTHOR


@dataclass(frozen=True)
class AccountConfig:
    """Credentials and coordinates for one configured account."""
    organization_url: str
    personal_access_token: str
    project: str
    repo_name: Optional[str] = None

    @property
    def name(self) -> str:
        """Short display name, e.g. 'contoso/Backend'."""
        org = self.organization_url.rstrip('/').rsplit('/', 1)[-1]
        return f"{org}/{self.project}"

    def __repr__(self) -> str:
        # Keep the token out of logs and tracebacks
        return (f"AccountConfig(organization_url={self.organization_url!r}, "
                f"project={self.project!r}, repo_name={self.repo_name!r})")


@dataclass(frozen=True)
class Reviewer:
    """One entry in a pull request's reviewer list."""
    id: str
    display_name: str
    vote: Vote = Vote.NO_VOTE
    is_required: bool = False


@dataclass(frozen=True)
class RawReview:
    """A pull request under review, as returned by the backend."""
    id: int
    title: str
    is_draft: bool = False
    reviewers: Tuple[Reviewer, ...] = ()
    author: str = ''
    repository: str = ''
    created: Optional[datetime] = None
    url: str = ''

    def find_reviewer(self, user_id: str) -> Optional[Reviewer]:
        """Find a reviewer by identity, comparing ids case-insensitively.

        Args:
            user_id: Identity of the reviewer to look for

        Returns:
            The matching reviewer, or None if the user is not assigned
        """
        wanted = user_id.lower()
        for reviewer in self.reviewers:
            if reviewer.id.lower() == wanted:
                return reviewer
        return None


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class DashboardEntry:
    """A classified pull request together with the account it came from."""
    review: RawReview
    state: ReviewState
    account: AccountConfig
    account_index: int = 0

    def sort_key(self) -> tuple:
        """Total order for the displayed list.

        State priority, then configured account order, then oldest first,
        then pull request id. Entries without a creation date sort last
        within their account.
        """
        created = self.review.created
        return (
            self.state.priority,
            self.account_index,
            created is None,
            created.timestamp() if created else 0.0,
            self.review.id,
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, DashboardEntry):
            return NotImplemented
        return self.sort_key() == other.sort_key() and self.review.url == other.review.url

    def __lt__(self, other) -> bool:
        if not isinstance(other, DashboardEntry):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __hash__(self) -> int:
        return hash((self.sort_key(), self.review.url))

    def open(self) -> bool:
        """Open the pull request in the system web browser.

        Returns:
            True if a browser was launched
        """
        if not self.review.url:
            logging.warning(f"Pull request #{self.review.id} has no URL to open")
            return False

        logging.info(f"Opening pull request #{self.review.id}: {self.review.url}")
        return webbrowser.open(self.review.url, new=2)


@dataclass(frozen=True)
class Statistics:
    """Immutable snapshot of the per-state counters of one refresh cycle."""
    actionable: int = 0
    waiting: int = 0
    drafts: int = 0
    signed_off: int = 0

    @property
    def total(self) -> int:
        return self.actionable + self.waiting + self.drafts + self.signed_off

    def count(self, state: ReviewState) -> int:
        return getattr(self, _STATISTICS_FIELDS[state])

    def incremented(self, state: ReviewState) -> 'Statistics':
        """Return a copy with the counter for the given state increased by one."""
        name = _STATISTICS_FIELDS[state]
        return replace(self, **{name: getattr(self, name) + 1})

    def summary(self) -> str:
        return (f"Actionable: {self.actionable}  Waiting: {self.waiting}  "
                f"Drafts: {self.drafts}  Signed Off: {self.signed_off}  Total: {self.total}")


_STATISTICS_FIELDS = {
    ReviewState.ACTIONABLE: 'actionable',
    ReviewState.WAITING: 'waiting',
    ReviewState.DRAFT: 'drafts',
    ReviewState.SIGNED_OFF: 'signed_off',
}
