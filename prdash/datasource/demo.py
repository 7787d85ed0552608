"""Pull request source with canned data, for demos and screenshots."""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence, Tuple

from ..models import AccountConfig, RawReview, Reviewer, Vote
from .base import PullRequestSource

DEMO_USER_ID = '6f1c2a4e-0b7d-4c39-9e55-1d2f3a4b5c6d'
OTHER_USER_ID = '0a9b8c7d-6e5f-4a3b-8c2d-1e0f9a8b7c6d'

DEMO_ACCOUNTS = [
    AccountConfig('https://dev.azure.com/contoso', 'demo', 'Storefront'),
    AccountConfig('https://dev.azure.com/fabrikam', 'demo', 'Telemetry', repo_name='ingest'),
]

# (account index, title, draft, my vote or None if not a reviewer, author, age in days)
_DEMO_REVIEWS = [
    (0, 'Add retry policy to checkout service', False, Vote.NO_VOTE, 'Ada Lovelace', 3),
    (0, 'Fix currency rounding in cart totals', False, Vote.WAITING_FOR_AUTHOR, 'Grace Hopper', 6),
    (0, 'WIP: migrate catalog to new search index', True, None, 'Alan Turing', 1),
    (0, 'Bump payment SDK to 4.2', False, Vote.APPROVED, 'Ada Lovelace', 9),
    (0, 'Localize order confirmation emails', False, Vote.NO_VOTE, 'Edsger Dijkstra', 12),
    (1, 'Batch telemetry uploads', False, Vote.NO_VOTE, 'Barbara Liskov', 2),
    (1, 'Drop legacy v1 ingest endpoint', False, Vote.REJECTED, 'Ken Thompson', 15),
    (1, 'Sampling for high volume tenants', False, Vote.APPROVED_WITH_SUGGESTIONS, 'Margaret Hamilton', 4),
    (1, 'Draft: schema registry prototype', True, Vote.NO_VOTE, 'Dennis Ritchie', 5),
    (1, 'Tune Kafka consumer lag alerts', False, Vote.WAITING_FOR_AUTHOR, 'Frances Allen', 8),
    (1, 'Rename ingest metrics', False, None, 'Linus Torvalds', 7),
]


class DemoPullRequestSource(PullRequestSource):
    """Serves a fixed set of pull requests without touching the network."""

    def __init__(self, accounts: Optional[Sequence[AccountConfig]] = None, delay: float = 0.0, **kwargs):
        """Initialize the demo source.

        Args:
            accounts: Accounts to attribute the demo data to (defaults to DEMO_ACCOUNTS)
            delay: Seconds to sleep per account, to mimic network latency
            **kwargs: Callbacks forwarded to PullRequestSource
        """
        super().__init__(accounts or DEMO_ACCOUNTS, **kwargs)
        self.delay = delay
        self._now = datetime.now(timezone.utc)

    def _fetch_account(self, account: AccountConfig) -> Tuple[str, List[RawReview]]:
        if self.delay:
            time.sleep(self.delay)

        index = self.accounts.index(account) % len(DEMO_ACCOUNTS)
        reviews = [
            self._make_review(number, *row[1:])
            for number, row in enumerate(_DEMO_REVIEWS, start=100)
            if row[0] == index
        ]
        logging.debug(f"Serving {len(reviews)} demo pull requests for {account.name}")
        return DEMO_USER_ID, reviews

    def _make_review(self, number: int, title: str, draft: bool, vote, author: str, age_days: int) -> RawReview:
        reviewers = [Reviewer(OTHER_USER_ID, 'Build Bot', Vote.NO_VOTE)]
        if vote is not None:
            reviewers.append(Reviewer(DEMO_USER_ID, 'Demo User', vote, is_required=True))

        return RawReview(
            id=number,
            title=title,
            is_draft=draft,
            reviewers=tuple(reviewers),
            author=author,
            repository='demo',
            created=self._now - timedelta(days=age_days),
            url=f"https://example.com/demo/pullrequest/{number}",
        )
