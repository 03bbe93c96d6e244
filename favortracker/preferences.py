"""Debounced autosave for character UI preferences.

Weight edits and filter toggles arrive on every widget change. DebouncedSaver
coalesces them so only the latest preferences are written once the user
pauses.
"""

import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_SAVE_DELAY = 1.5


class DebouncedSaver:
    """Trailing-edge debouncer around a save function.

    Example:
        >>> saver = DebouncedSaver(lambda prefs: print("saved", prefs), delay=1.5)
        >>> saver.schedule({"show_raids": True})
        >>> saver.schedule({"show_raids": False})  # replaces the pending save
        >>> saver.flush()
        saved {'show_raids': False}
    """

    def __init__(self, save_func: Callable[[Any], Any], delay: float = DEFAULT_SAVE_DELAY,
                 timer_factory: Callable = threading.Timer):
        self._save_func = save_func
        self._delay = delay
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer = None
        self._payload = None
        self._has_pending = False
        self._last_save_failed = False

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._has_pending

    @property
    def last_save_failed(self) -> bool:
        """True when the most recent save returned False or raised."""
        with self._lock:
            return self._last_save_failed

    def clear_failure(self) -> None:
        with self._lock:
            self._last_save_failed = False

    def schedule(self, payload: Any) -> None:
        """Queue payload for saving, replacing any save still waiting."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._payload = payload
            self._has_pending = True
            self._timer = self._timer_factory(self._delay, self.flush)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        """Drop the pending save, if any."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._payload = None
            self._has_pending = False

    def flush(self) -> Optional[bool]:
        """Write the pending payload now.

        Returns:
            The save function's result, or None if nothing was pending or the
            save raised (the error is logged). A False or raising save sets
            last_save_failed until clear_failure is called.
        """
        with self._lock:
            if not self._has_pending:
                return None
            if self._timer is not None:
                self._timer.cancel()
            payload = self._payload
            self._timer = None
            self._payload = None
            self._has_pending = False

        try:
            result = self._save_func(payload)
        except Exception as e:
            logger.error(f"Failed to autosave preferences: {e}")
            result = None
            failed = True
        else:
            failed = result is False
            if failed:
                logger.error("Failed to autosave preferences: save reported failure")

        with self._lock:
            self._last_save_failed = failed
        return result
