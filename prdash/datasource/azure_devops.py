"""Pull request source backed by the Azure DevOps server."""

from typing import List, Tuple

from ..api_client import open_connection
from ..models import AccountConfig, RawReview
from .base import PullRequestSource


class AzureDevOpsPullRequestSource(PullRequestSource):
    """Retrieves the active pull requests assigned to the user from Azure DevOps."""

    def _fetch_account(self, account: AccountConfig) -> Tuple[str, List[RawReview]]:
        # One connection per account, closed before the reviews are classified
        with open_connection(account) as client:
            current_user_id = client.resolve_current_user()
            reviews = client.search_active_reviews(current_user_id)
        return current_user_id, reviews
