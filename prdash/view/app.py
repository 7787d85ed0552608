"""Textual application hosting the pull request dashboard."""

import logging
from datetime import timedelta
from typing import Callable, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header, OptionList, Static

from ..datasource import AccountFetchError, PullRequestSource
from ..models import ReviewState, Statistics
from ..refresh import REFRESH_INTERVAL, RefreshEngine
from .pull_request_list import PullRequestList

HELP_TEXT = """\
j / k      move down / up
enter      open the pull request in the browser
r          refresh
a          actionable pull requests
w          pull requests waiting on the author
d          draft pull requests
s          pull requests you signed off
h / ?      this help
q / esc    quit"""

# Builds the source, given the statistics and account error callbacks
SourceFactory = Callable[..., PullRequestSource]


class PrDashApp(App):
    """Terminal dashboard of the pull requests waiting for your review."""

    TITLE = 'PR Dash'

    CSS = """
    #pull-requests {
        height: 1fr;
        border: none;
    }

    #statistics {
        height: 1;
        padding: 0 1;
        background: $boost;
        color: $text-muted;
    }
    """

    BINDINGS = [
        Binding('q', 'quit', 'Quit'),
        Binding('escape', 'quit', 'Quit', show=False),
        Binding('ctrl+c', 'quit', 'Quit', show=False, priority=True),
        Binding('r', 'refresh', 'Refresh'),
        Binding('a', "switch_state('actionable')", 'Actionable'),
        Binding('w', "switch_state('waiting')", 'Waiting'),
        Binding('d', "switch_state('draft')", 'Drafts'),
        Binding('s', "switch_state('signed_off')", 'Signed Off'),
        Binding('h', 'help', 'Help'),
        Binding('question_mark', 'help', 'Help', show=False, key_display='?'),
    ]

    def __init__(self, source_factory: SourceFactory, refresh_interval: timedelta = REFRESH_INTERVAL):
        """Initialize the application.

        Args:
            source_factory: Called once with ``on_statistics`` and ``on_account_error``
                keyword arguments to build the pull request source
            refresh_interval: How often the list is refreshed automatically
        """
        super().__init__()
        self.source = source_factory(
            on_statistics=self._post_statistics,
            on_account_error=self._post_account_error,
        )
        self.auto_refresh_interval = refresh_interval
        self.engine: Optional[RefreshEngine] = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield PullRequestList(id='pull-requests')
        yield Static(Statistics().summary(), id='statistics')
        yield Footer()

    def on_mount(self) -> None:
        pull_requests = self.query_one(PullRequestList)
        self.engine = RefreshEngine(
            self.source,
            pull_requests,
            self.call_from_thread,
            on_complete=self._refresh_complete,
        )
        self._update_title()
        pull_requests.focus()

        self.engine.refresh()
        self.set_interval(self.auto_refresh_interval.total_seconds(), self._refresh_timer)

    def on_unmount(self) -> None:
        if self.engine:
            self.engine.shutdown()

    # ─── Actions ──────────────────────────────────────────────────────────

    def action_refresh(self) -> None:
        if not self.engine.refresh():
            self.notify("A refresh is already running", severity='warning')

    def action_switch_state(self, state_name: str) -> None:
        """Show pull requests in another review state."""
        state = ReviewState(state_name)
        if self.engine.switch_state(state):
            self._update_title()
        else:
            self.notify(f"Still loading, press again to show {state.label.lower()} when done",
                        severity='warning')

    def action_help(self) -> None:
        self.notify(HELP_TEXT, title='Keys', timeout=10)

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        entry = self.query_one(PullRequestList).entry_at(event.option_index)
        if entry is None:
            return
        if not entry.open():
            self.notify(f"Could not open pull request #{entry.review.id}", severity='error')

    # ─── Refresh callbacks ────────────────────────────────────────────────

    def _refresh_timer(self) -> None:
        if not self.engine.refresh():
            logging.info("Skipping timed refresh, a refresh is already running")

    def _refresh_complete(self, state: ReviewState, error: Exception) -> None:
        pull_requests = self.query_one(PullRequestList)
        if pull_requests.entry_count == 0:
            pull_requests.show_empty(state)
        if error is not None:
            self.notify(f"Refresh failed: {error}", title='Error', severity='error')

    def _post_statistics(self, statistics: Statistics) -> None:
        # Called from the refresh worker thread
        self.call_from_thread(self._show_statistics, statistics)

    def _post_account_error(self, error: AccountFetchError) -> None:
        self.call_from_thread(self.notify, str(error), title=error.account.name, severity='error')

    def _show_statistics(self, statistics: Statistics) -> None:
        self.query_one('#statistics', Static).update(statistics.summary())

    def _update_title(self) -> None:
        self.sub_title = f"{self.engine.state.label} pull requests"
