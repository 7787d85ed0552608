"""
Unit tests for the single-flight refresh engine
"""

import queue
import threading
import time

import pytest
from unittest.mock import Mock

from prdash.models import AccountConfig, DashboardEntry, RawReview, ReviewState
from prdash.refresh import REFRESH_INTERVAL, RefreshEngine

ACCOUNT = AccountConfig('https://dev.azure.com/contoso', 'token', 'Backend')


def make_entry(pr_id, state=ReviewState.ACTIONABLE):
    return DashboardEntry(RawReview(id=pr_id, title=f'PR {pr_id}'), state, ACCOUNT)


class ManualExecutor:
    """Executor that runs submitted tasks only when asked to."""

    def __init__(self):
        self.tasks = []
        self.is_shut_down = False

    def submit(self, fn, *args):
        self.tasks.append((fn, args))

    def run_next(self):
        fn, args = self.tasks.pop(0)
        fn(*args)

    def shutdown(self, wait=True):
        self.is_shut_down = True


class UiLoop:
    """Stands in for the UI thread: dispatched calls queue up until drained."""

    def __init__(self):
        self.pending = queue.Queue()

    def dispatch(self, fn, *args):
        self.pending.put((fn, args))

    def drain(self):
        count = 0
        while not self.pending.empty():
            fn, args = self.pending.get_nowait()
            fn(*args)
            count += 1
        return count

    def run_until(self, condition, timeout=5.0):
        deadline = time.monotonic() + timeout
        while not condition():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise AssertionError("UI loop timed out")
            try:
                fn, args = self.pending.get(timeout=min(remaining, 0.1))
            except queue.Empty:
                continue
            fn(*args)


class FakeView:
    """Records what the engine publishes."""

    def __init__(self):
        self.loading_count = 0
        self.snapshots = []

    def show_loading(self):
        self.loading_count += 1
        self.snapshots.append([])

    def show_entries(self, entries):
        self.snapshots.append([e.review.id for e in entries])


class ListSource:
    """Source returning fixed entries per state, optionally failing midway."""

    def __init__(self, entries_by_state=None, fail_after=None):
        self.entries_by_state = entries_by_state or {}
        self.fail_after = fail_after
        self.requested = []

    def fetch(self, state):
        self.requested.append(state)
        return self._generate(state)

    def _generate(self, state):
        for count, entry in enumerate(self.entries_by_state.get(state, [])):
            if self.fail_after is not None and count == self.fail_after:
                raise ConnectionError("connection reset")
            yield entry


class TestRefreshCycle:
    """Test cases for a single refresh cycle."""

    @pytest.fixture
    def source(self):
        return ListSource({
            ReviewState.ACTIONABLE: [make_entry(3), make_entry(1), make_entry(2)],
            ReviewState.WAITING: [make_entry(7, ReviewState.WAITING)],
        })

    @pytest.fixture
    def executor(self):
        return ManualExecutor()

    @pytest.fixture
    def ui(self):
        return UiLoop()

    @pytest.fixture
    def view(self):
        return FakeView()

    @pytest.fixture
    def on_complete(self):
        return Mock()

    @pytest.fixture
    def engine(self, source, view, ui, executor, on_complete):
        return RefreshEngine(source, view, ui.dispatch, on_complete=on_complete, executor=executor)

    def test_refresh_starts_background_task(self, engine, executor, view):
        assert engine.refresh() is True

        assert engine.is_refreshing
        assert len(executor.tasks) == 1
        assert view.loading_count == 1

    def test_entries_published_one_at_a_time_sorted(self, engine, executor, ui, view):
        engine.refresh()
        executor.run_next()

        assert ui.drain() == 4  # three entries and the completion
        assert view.snapshots == [[], [3], [1, 3], [1, 2, 3]]
        assert [e.review.id for e in engine.entries] == [1, 2, 3]

    def test_nothing_published_before_ui_thread_runs(self, engine, executor, view):
        engine.refresh()
        executor.run_next()

        assert view.snapshots == [[]]
        assert engine.entries == []

    def test_guard_held_until_completion_applied(self, engine, executor, ui, on_complete):
        engine.refresh()
        executor.run_next()

        assert engine.is_refreshing
        ui.drain()

        assert not engine.is_refreshing
        on_complete.assert_called_once_with(ReviewState.ACTIONABLE, None)

    def test_refresh_again_after_completion(self, engine, executor, ui, source, view):
        engine.refresh()
        executor.run_next()
        ui.drain()

        assert engine.refresh() is True
        assert engine.entries == []  # backing list cleared when a cycle starts
        executor.run_next()
        ui.drain()

        assert source.requested == [ReviewState.ACTIONABLE, ReviewState.ACTIONABLE]
        assert view.loading_count == 2
        assert [e.review.id for e in engine.entries] == [1, 2, 3]

    def test_switch_state_when_idle(self, engine, executor, ui, source):
        assert engine.switch_state(ReviewState.WAITING) is True
        assert engine.state == ReviewState.WAITING

        executor.run_next()
        ui.drain()

        assert source.requested == [ReviewState.WAITING]
        assert [e.review.id for e in engine.entries] == [7]

    def test_empty_cycle(self, engine, executor, ui, on_complete):
        engine.switch_state(ReviewState.DRAFT)
        executor.run_next()
        ui.drain()

        assert engine.entries == []
        on_complete.assert_called_once_with(ReviewState.DRAFT, None)

    def test_default_interval(self):
        assert REFRESH_INTERVAL.total_seconds() == 30 * 60


class TestSingleFlight:
    """Test cases for dropping triggers while a cycle is in flight."""

    @pytest.fixture
    def executor(self):
        return ManualExecutor()

    @pytest.fixture
    def source(self):
        return ListSource({ReviewState.ACTIONABLE: [make_entry(1), make_entry(2)]})

    @pytest.fixture
    def engine(self, source, executor):
        return RefreshEngine(source, FakeView(), UiLoop().dispatch, executor=executor)

    def test_second_refresh_is_dropped(self, engine, executor):
        assert engine.refresh() is True
        assert engine.refresh() is False
        assert len(executor.tasks) == 1

    def test_switch_state_is_dropped(self, engine, executor):
        engine.refresh()

        assert engine.switch_state(ReviewState.WAITING) is False
        assert engine.state == ReviewState.ACTIONABLE
        assert len(executor.tasks) == 1

    def test_dropped_trigger_does_not_change_result(self, source, executor):
        ui = UiLoop()
        engine = RefreshEngine(source, FakeView(), ui.dispatch, executor=executor)

        engine.refresh()
        engine.refresh()
        engine.switch_state(ReviewState.WAITING)
        executor.run_next()
        ui.drain()

        assert source.requested == [ReviewState.ACTIONABLE]
        assert [e.review.id for e in engine.entries] == [1, 2]

    def test_single_flight_with_worker_thread(self):
        """Test single-flight with a real background thread blocked on I/O."""
        started = threading.Event()
        release = threading.Event()
        done = threading.Event()

        def blocking_fetch(state):
            started.set()
            release.wait(5)
            yield make_entry(1)

        source = Mock()
        source.fetch.side_effect = blocking_fetch
        ui = UiLoop()
        engine = RefreshEngine(source, FakeView(), ui.dispatch, on_complete=lambda state, error: done.set())

        try:
            assert engine.refresh() is True
            ui.run_until(started.is_set)

            assert engine.refresh() is False
            assert engine.switch_state(ReviewState.WAITING) is False

            release.set()
            ui.run_until(done.is_set)
        finally:
            release.set()
            engine.shutdown()

        assert source.fetch.call_count == 1
        assert [e.review.id for e in engine.entries] == [1]
        assert not engine.is_refreshing


class TestRefreshFailures:
    """Test cases for errors during a cycle."""

    def test_failure_keeps_partial_list(self):
        source = ListSource({ReviewState.ACTIONABLE: [make_entry(2), make_entry(1), make_entry(3)]}, fail_after=2)
        executor = ManualExecutor()
        ui = UiLoop()
        on_complete = Mock()
        engine = RefreshEngine(source, FakeView(), ui.dispatch, on_complete=on_complete, executor=executor)

        engine.refresh()
        executor.run_next()
        ui.drain()

        assert [e.review.id for e in engine.entries] == [1, 2]
        state, error = on_complete.call_args.args
        assert state == ReviewState.ACTIONABLE
        assert isinstance(error, ConnectionError)
        assert not engine.is_refreshing

    def test_failure_allows_retry(self):
        source = ListSource({ReviewState.ACTIONABLE: [make_entry(1)]}, fail_after=0)
        executor = ManualExecutor()
        ui = UiLoop()
        engine = RefreshEngine(source, FakeView(), ui.dispatch, executor=executor)

        engine.refresh()
        executor.run_next()
        ui.drain()

        source.fail_after = None
        assert engine.refresh() is True
        executor.run_next()
        ui.drain()
        assert [e.review.id for e in engine.entries] == [1]

    def test_guard_released_when_ui_loop_is_gone(self):
        executor = ManualExecutor()
        dispatch = Mock(side_effect=RuntimeError("App is not running"))
        engine = RefreshEngine(ListSource(), FakeView(), dispatch, executor=executor)

        engine.refresh()
        with pytest.raises(RuntimeError):
            executor.run_next()

        assert not engine.is_refreshing

    def test_view_failure_releases_guard(self):
        view = FakeView()
        view.show_loading = Mock(side_effect=ValueError("not mounted"))
        executor = ManualExecutor()
        engine = RefreshEngine(ListSource(), view, UiLoop().dispatch, executor=executor)

        with pytest.raises(ValueError):
            engine.refresh()

        assert not engine.is_refreshing
        assert executor.tasks == []


class TestShutdown:
    """Test cases for cancellation."""

    def test_shutdown_stops_cycle_between_entries(self):
        source = ListSource({ReviewState.ACTIONABLE: [make_entry(1), make_entry(2), make_entry(3)]})
        executor = ManualExecutor()
        engine = None

        def dispatch(fn, *args):
            fn(*args)
            # Closing the app while the first entry is being shown
            engine.shutdown()

        engine = RefreshEngine(source, FakeView(), dispatch, executor=executor)
        engine.refresh()
        executor.run_next()

        assert [e.review.id for e in engine.entries] == [1]
        assert executor.is_shut_down
        assert not engine.is_refreshing

    def test_refresh_after_shutdown_is_ignored(self):
        executor = ManualExecutor()
        engine = RefreshEngine(ListSource(), FakeView(), UiLoop().dispatch, executor=executor)

        engine.shutdown()

        assert engine.refresh() is False
        assert executor.tasks == []


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
