"""Single-flight refresh of the dashboard's pull request list.

A refresh cycle runs on a background worker thread. Every entry it produces
is handed to the UI thread through ``dispatch``, which appends it to the
backing list, re-sorts and republishes the list to the view. While a cycle
is running, further triggers are dropped rather than queued.
"""

import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from datetime import timedelta
from typing import Callable, List, Optional

from .datasource import PullRequestSource
from .models import DashboardEntry, ReviewState

# The interval in which the view's data is refreshed
REFRESH_INTERVAL = timedelta(minutes=30)

Dispatch = Callable[..., object]
CompletionCallback = Callable[[ReviewState, Optional[Exception]], None]


class RefreshEngine:
    """Drives the pull request source and publishes its results to a view.

    The view must provide ``show_loading()`` and ``show_entries(entries)``;
    both are only ever called on the UI thread.
    """

    def __init__(
        self,
        source: PullRequestSource,
        view,
        dispatch: Dispatch,
        state: ReviewState = ReviewState.ACTIONABLE,
        on_complete: Optional[CompletionCallback] = None,
        executor: Optional[Executor] = None
    ):
        """Initialize the engine.

        Args:
            source: Where pull requests come from
            view: The widget that renders the backing list
            dispatch: Runs ``fn(*args)`` on the UI thread, e.g. App.call_from_thread
            state: The review state shown initially
            on_complete: Called on the UI thread when a cycle ends, with the error if it failed
            executor: Runs the background task; defaults to a single worker thread
        """
        self._source = source
        self._view = view
        self._dispatch = dispatch
        self._state = state
        self._on_complete = on_complete
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix='pr-refresh')

        # Only touched on the UI thread
        self._backing_list: List[DashboardEntry] = []

        # Held for the whole duration of a cycle
        self._refresh_guard = threading.Lock()
        self._cancelled = threading.Event()

    @property
    def state(self) -> ReviewState:
        return self._state

    @property
    def entries(self) -> List[DashboardEntry]:
        """Copy of the entries currently displayed."""
        return list(self._backing_list)

    @property
    def is_refreshing(self) -> bool:
        return self._refresh_guard.locked()

    def refresh(self) -> bool:
        """Start a refresh cycle for the current state.

        Returns:
            True if a cycle was started, False if one is already running
        """
        return self._start_cycle(self._state)

    def switch_state(self, state: ReviewState) -> bool:
        """Switch the displayed review state and refresh.

        The switch is dropped, and the current state kept, when a cycle is
        already in flight.

        Returns:
            True if the switch took effect
        """
        return self._start_cycle(state)

    def shutdown(self):
        """Ask a running cycle to stop and release the worker thread."""
        self._cancelled.set()
        self._executor.shutdown(wait=False)

    def _start_cycle(self, state: ReviewState) -> bool:
        if self._cancelled.is_set():
            logging.debug("Refresh requested after shutdown, ignoring")
            return False

        if not self._refresh_guard.acquire(blocking=False):
            logging.debug(f"Refresh already in progress, dropping request for {state.label}")
            return False

        try:
            self._state = state
            self._backing_list.clear()
            self._view.show_loading()
            self._executor.submit(self._run_cycle, state)
        except Exception:
            self._refresh_guard.release()
            raise

        logging.info(f"Started refresh of {state.label.lower()} pull requests")
        return True

    def _run_cycle(self, state: ReviewState):
        """Background task: stream entries from the source onto the UI thread."""
        error = None
        count = 0
        try:
            for entry in self._source.fetch(state):
                if self._cancelled.is_set():
                    logging.info("Refresh cancelled")
                    break
                self._dispatch(self._insert_entry, entry)
                count += 1
        except Exception as e:
            logging.error(f"Refresh of {state.label.lower()} pull requests failed: {e}", exc_info=True)
            error = e

        logging.info(f"Refresh finished with {count} {state.label.lower()} pull request(s)")

        try:
            self._dispatch(self._finish_cycle, state, error)
        except Exception:
            # The UI loop is gone; still leave the engine idle
            if self._refresh_guard.locked():
                self._refresh_guard.release()
            raise

    def _insert_entry(self, entry: DashboardEntry):
        self._backing_list.append(entry)
        self._backing_list.sort()
        self._view.show_entries(list(self._backing_list))

    def _finish_cycle(self, state: ReviewState, error: Optional[Exception]):
        self._refresh_guard.release()
        if self._on_complete:
            self._on_complete(state, error)
