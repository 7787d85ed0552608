"""Sources of pull requests for the dashboard."""

from .base import AccountFetchError, PullRequestSource
from .azure_devops import AzureDevOpsPullRequestSource
from .demo import DemoPullRequestSource

__all__ = [
    'AccountFetchError',
    'PullRequestSource',
    'AzureDevOpsPullRequestSource',
    'DemoPullRequestSource',
]
