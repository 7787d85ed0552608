"""List widget that renders the dashboard entries."""

from typing import List, Optional

from rich.text import Text
from textual.binding import Binding
from textual.widgets import OptionList
from textual.widgets.option_list import Option

from ..models import DashboardEntry, ReviewState

LOADING_TEXT = ' Loading...'

STATE_STYLES = {
    ReviewState.ACTIONABLE: 'bold #5fd7d7',
    ReviewState.WAITING: 'bold #d7af5f',
    ReviewState.DRAFT: 'bold #af87ff',
    ReviewState.SIGNED_OFF: 'bold #87d787',
}


def render_entry(entry: DashboardEntry) -> Text:
    """Build the styled row for one entry."""
    review = entry.review
    text = Text()
    text.append(review.created.strftime('%Y-%m-%d') if review.created else '----------', style='dim')
    text.append('  ')
    text.append(f"{(review.repository or entry.account.project):<20.20}", style='#5fafff')
    text.append('  ')
    text.append(f"{(review.author or 'unknown'):<20.20}", style='#ff87d7')
    text.append('  ')
    text.append(review.title, style=STATE_STYLES[entry.state])
    return text


class PullRequestList(OptionList):
    """Option list showing pull requests, with vim style navigation."""

    BINDINGS = [
        Binding('j', 'cursor_down', 'Down', show=False),
        Binding('k', 'cursor_up', 'Up', show=False),
    ]

    def __init__(self, **kwargs):
        super().__init__(Option(LOADING_TEXT, disabled=True), **kwargs)
        self._entries: List[DashboardEntry] = []

    def show_loading(self) -> None:
        self._entries = []
        self.clear_options()
        self.add_option(Option(LOADING_TEXT, disabled=True))

    def show_entries(self, entries: List[DashboardEntry]) -> None:
        """Replace the rows and move the cursor back to the first entry."""
        self._entries = list(entries)
        self.clear_options()
        self.add_options([Option(render_entry(entry)) for entry in self._entries])
        if self._entries:
            self.highlighted = 0
        self.scroll_home(animate=False)

    def show_empty(self, state: ReviewState) -> None:
        self._entries = []
        self.clear_options()
        self.add_option(Option(f" No {state.label.lower()} pull requests", disabled=True))

    def entry_at(self, index: Optional[int]) -> Optional[DashboardEntry]:
        if index is None or not 0 <= index < len(self._entries):
            return None
        return self._entries[index]

    @property
    def entry_count(self) -> int:
        return len(self._entries)
