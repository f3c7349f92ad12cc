"""Debounced autosave: coalesce bursts of edits into one store call."""

import logging
import threading
from enum import Enum
from functools import partial
from typing import Callable

from .constants import DEBOUNCE_SECONDS, FLUSH_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class SaveState(Enum):
    IDLE = "idle"
    PENDING = "pending"
    SAVING = "saving"


def threading_timer(interval: float, fn: Callable[[], None]) -> threading.Timer:
    """Start a daemon timer thread."""
    timer = threading.Timer(interval, fn)
    timer.daemon = True
    timer.start()
    return timer


class AutosaveScheduler:
    """
    Debounce state machine around a save callback.

    IDLE/PENDING --mutation--> PENDING (timer re-armed)
    PENDING --timer--> SAVING --done--> IDLE, or PENDING if edits arrived
    SAVING --mutation--> follow-up queued, never dropped

    Only one save runs at a time. A failed save leaves the dirty flag set;
    the next mutation or an explicit flush retries.
    """

    def __init__(
        self,
        save_fn: Callable[[], None],
        debounce_seconds: float = DEBOUNCE_SECONDS,
        timer_factory: Callable = threading_timer,
    ):
        self.save_fn = save_fn
        self.debounce_seconds = debounce_seconds
        self.timer_factory = timer_factory

        self._cond = threading.Condition(threading.RLock())
        self._state = SaveState.IDLE
        self._timer = None
        self._arm_seq = 0
        self._dirty = False
        self._generation = 0
        self._follow_up = False
        self._closed = False

        self.save_count = 0
        self.last_error: Exception | None = None

    @property
    def state(self) -> SaveState:
        return self._state

    @property
    def has_unsaved_changes(self) -> bool:
        return self._dirty

    def notify_mutation(self, event=None):
        """Record an edit and (re)arm the debounce timer."""
        with self._cond:
            self._dirty = True
            self._generation += 1

            if self._closed:
                return
            if self._state is SaveState.SAVING:
                self._follow_up = True
                logger.debug("Edit during save, follow-up queued")
                return

            self._arm()

    def flush(self, timeout: float | None = FLUSH_TIMEOUT_SECONDS) -> bool:
        """
        Save now instead of waiting for the timer.
        Returns True if nothing is left unsaved afterwards.
        """
        with self._cond:
            self._cancel_timer()
            self._follow_up = False

            if self._state is SaveState.SAVING:
                done = self._cond.wait_for(lambda: self._state is not SaveState.SAVING, timeout)
                self._cancel_timer()
                self._follow_up = False
                if not done:
                    logger.warning("Flush timed out waiting for in-flight save")
                    return False

            if not self._dirty:
                self._state = SaveState.IDLE
                return True

            self._state = SaveState.SAVING

        return self._run_save()

    def close(self, timeout: float | None = FLUSH_TIMEOUT_SECONDS, flush: bool = True) -> bool:
        """Flush pending edits (unless told not to) and stop scheduling further saves."""
        ok = self.flush(timeout) if flush else not self._dirty
        with self._cond:
            self._closed = True
            self._cancel_timer()
        if not ok:
            logger.warning("Closing with unsaved changes")
        return ok

    # ========================================================================
    # Internals
    # ========================================================================

    def _arm(self):
        """Reset the debounce timer. Caller must hold lock."""
        self._cancel_timer()
        self._state = SaveState.PENDING
        self._arm_seq += 1
        self._timer = self.timer_factory(self.debounce_seconds, partial(self._on_timer, self._arm_seq))

    def _cancel_timer(self):
        """Caller must hold lock."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._state is SaveState.PENDING:
            self._state = SaveState.IDLE

    def _on_timer(self, seq: int):
        with self._cond:
            # Superseded by a flush or a newer timer
            if seq != self._arm_seq or self._state is not SaveState.PENDING or self._closed:
                return
            self._timer = None
            self._state = SaveState.SAVING
        self._run_save()

    def _run_save(self) -> bool:
        """Run save_fn outside the lock. State must already be SAVING."""
        with self._cond:
            generation = self._generation

        error = None
        try:
            self.save_fn()
        except Exception as e:
            logger.error(f"Autosave failed: {e}")
            error = e
        success = error is None

        with self._cond:
            if success:
                self.save_count += 1
                self.last_error = None
                if self._generation == generation:
                    self._dirty = False
            else:
                self.last_error = error

            if self._follow_up and not self._closed:
                self._follow_up = False
                self._arm()
            else:
                self._state = SaveState.IDLE

            self._cond.notify_all()

        return success and not self._dirty
