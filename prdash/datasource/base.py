"""Common fetch-and-classify pipeline shared by all pull request sources."""

import logging
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from ..classifier import classify
from ..models import AccountConfig, DashboardEntry, RawReview, ReviewState, Statistics

StatisticsCallback = Callable[[Statistics], None]
AccountErrorCallback = Callable[['AccountFetchError'], None]


class AccountFetchError(Exception):
    """Raised (and reported) when one account could not be queried."""

    def __init__(self, account: AccountConfig, cause: Exception):
        super().__init__(f"Failed to fetch pull requests for {account.name}: {cause}")
        self.account = account
        self.cause = cause


class PullRequestSource:
    """Streams classified pull requests across all configured accounts.

    Subclasses provide `_fetch_account`, which returns the current user and
    the raw reviews for one account. Accounts are processed one after the
    other; a statistics snapshot is published after each account.
    """

    def __init__(
        self,
        accounts: Sequence[AccountConfig],
        on_statistics: Optional[StatisticsCallback] = None,
        on_account_error: Optional[AccountErrorCallback] = None
    ):
        """Initialize the source.

        Args:
            accounts: The accounts to query, in configured order
            on_statistics: Called with a Statistics snapshot after each account
            on_account_error: Called with an AccountFetchError when an account fails
        """
        self.accounts = list(accounts)
        self._on_statistics = on_statistics
        self._on_account_error = on_account_error
        self._statistics = Statistics()
        self.last_errors: List[AccountFetchError] = []

    @property
    def statistics(self) -> Statistics:
        """The most recently published statistics snapshot."""
        return self._statistics

    def fetch(self, state: ReviewState) -> Iterator[DashboardEntry]:
        """Start a new cycle and stream the entries in the requested state.

        Statistics are reset immediately; entries are produced lazily as the
        returned iterator is consumed.

        Args:
            state: Only entries classified in this state are yielded

        Returns:
            Iterator of DashboardEntry
        """
        self._statistics = Statistics()
        self.last_errors = []
        logging.info(f"Fetching {state.label.lower()} pull requests from {len(self.accounts)} account(s)")
        return self._fetch_all(state)

    def _fetch_all(self, state: ReviewState) -> Iterator[DashboardEntry]:
        statistics = Statistics()

        for index, account in enumerate(self.accounts):
            try:
                current_user_id, reviews = self._fetch_account(account)
            except Exception as e:
                error = AccountFetchError(account, e)
                logging.error(str(error), exc_info=True)
                self.last_errors.append(error)
                if self._on_account_error:
                    self._on_account_error(error)
                continue

            for review in reviews:
                review_state = classify(review, current_user_id)
                if review_state is None:
                    continue

                statistics = statistics.incremented(review_state)

                if review_state == state:
                    yield DashboardEntry(review, review_state, account, index)

            logging.debug(f"Finished {account.name}: {statistics.summary()}")
            self._publish(statistics)

    def _publish(self, statistics: Statistics):
        self._statistics = statistics
        if self._on_statistics:
            self._on_statistics(statistics)

    def _fetch_account(self, account: AccountConfig) -> Tuple[str, List[RawReview]]:
        """Fetch the current user id and the active reviews for one account."""
        raise NotImplementedError
