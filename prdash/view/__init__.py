"""Terminal user interface for the dashboard."""

from .app import PrDashApp
from .pull_request_list import PullRequestList

__all__ = ['PrDashApp', 'PullRequestList']
