"""PR Dash - a terminal dashboard of the pull requests waiting for your review."""

from .models import AccountConfig, DashboardEntry, RawReview, Reviewer, ReviewState, Statistics, Vote
from .classifier import classify
from .config import Config, ConfigError
from .api_client import AzureDevOpsClient, BackendError
from .datasource import AccountFetchError, AzureDevOpsPullRequestSource, DemoPullRequestSource, PullRequestSource
from .refresh import RefreshEngine

__all__ = [
    'AccountConfig',
    'DashboardEntry',
    'RawReview',
    'Reviewer',
    'ReviewState',
    'Statistics',
    'Vote',
    'classify',
    'Config',
    'ConfigError',
    'AzureDevOpsClient',
    'BackendError',
    'AccountFetchError',
    'AzureDevOpsPullRequestSource',
    'DemoPullRequestSource',
    'PullRequestSource',
    'RefreshEngine',
]
