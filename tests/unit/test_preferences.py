"""
Unit tests for preferences module.
"""

from favortracker.preferences import DEFAULT_SAVE_DELAY, DebouncedSaver


class FakeTimer:
    """Timer stand-in that only fires when told to."""

    created = []

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False
        FakeTimer.created.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function()


def make_saver(result=True):
    FakeTimer.created = []
    saved = []

    def save(payload):
        saved.append(payload)
        return result

    return DebouncedSaver(save, timer_factory=FakeTimer), saved


class TestDebouncedSaver:
    """Test trailing-edge debounced saving."""

    def test_schedule_starts_daemon_timer(self):
        """Scheduling starts a daemon timer with the default delay."""
        saver, saved = make_saver()
        saver.schedule({"show_raids": True})

        timer = FakeTimer.created[0]
        assert timer.started is True
        assert timer.daemon is True
        assert timer.interval == DEFAULT_SAVE_DELAY
        assert saver.pending is True
        assert saved == []

    def test_only_latest_payload_saved(self):
        """Rapid edits coalesce into one write of the last payload."""
        saver, saved = make_saver()
        saver.schedule({"v": 1})
        saver.schedule({"v": 2})
        saver.schedule({"v": 3})

        assert [t.cancelled for t in FakeTimer.created] == [True, True, False]
        FakeTimer.created[-1].fire()
        assert saved == [{"v": 3}]
        assert saver.pending is False

    def test_cancelled_timer_does_not_save(self):
        """A replaced timer firing late writes nothing."""
        saver, saved = make_saver()
        saver.schedule({"v": 1})
        saver.schedule({"v": 2})

        FakeTimer.created[0].fire()
        assert saved == []

    def test_flush_saves_immediately(self):
        """Flush writes the pending payload and returns the save result."""
        saver, saved = make_saver(result=True)
        saver.schedule({"v": 1})

        assert saver.flush() is True
        assert saved == [{"v": 1}]
        assert FakeTimer.created[0].cancelled is True

    def test_flush_without_pending(self):
        """Flush with nothing pending does nothing."""
        saver, saved = make_saver()
        assert saver.flush() is None
        assert saved == []

    def test_cancel_drops_payload(self):
        """Cancel discards the pending save."""
        saver, saved = make_saver()
        saver.schedule({"v": 1})
        saver.cancel()

        assert saver.pending is False
        assert saver.flush() is None
        assert saved == []

    def test_save_error_is_logged(self, caplog):
        """Save failures are logged, not raised."""
        def failing_save(payload):
            raise RuntimeError("sheet offline")

        saver = DebouncedSaver(failing_save, timer_factory=FakeTimer)
        saver.schedule({"v": 1})

        assert saver.flush() is None
        assert "sheet offline" in caplog.text

    def test_false_result_marks_failure(self, caplog):
        """A save reporting False is remembered and logged."""
        saver, saved = make_saver(result=False)
        saver.schedule({"v": 1})

        assert saver.flush() is False
        assert saved == [{"v": 1}]
        assert saver.last_save_failed is True
        assert "Failed to autosave preferences" in caplog.text

        saver.clear_failure()
        assert saver.last_save_failed is False

    def test_raising_save_marks_failure(self):
        """A raising save is remembered as a failure."""
        def failing_save(payload):
            raise RuntimeError("quota exceeded")

        saver = DebouncedSaver(failing_save, timer_factory=FakeTimer)
        saver.schedule({"v": 1})
        saver.flush()

        assert saver.last_save_failed is True

    def test_success_clears_failure(self):
        """A later successful save resets the failure flag."""
        results = [False, True]
        saver = DebouncedSaver(lambda payload: results.pop(0), timer_factory=FakeTimer)

        saver.schedule({"v": 1})
        saver.flush()
        assert saver.last_save_failed is True

        saver.schedule({"v": 2})
        saver.flush()
        assert saver.last_save_failed is False

    def test_no_failure_initially(self):
        """A fresh saver has no failure recorded."""
        saver, _ = make_saver()
        assert saver.last_save_failed is False
