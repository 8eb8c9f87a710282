# -*- coding: utf-8 -*-

from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Optional

from client.api_client import ClientError, RemoteTimer, TrackingClient
from common.config import PollerConfig
from common.logger import get_logger
from core.clock import SystemClock, live_elapsed

log = get_logger("reconciler")


@dataclass(frozen=True)
class TimerView:
    label: str
    is_tracking: bool
    elapsed: int  # seconds to display
    busy: bool = False
    error: Optional[str] = None


class ReconciliationPoller:
    """
    Keeps one displayed timer in line with the server.

    Two separate loops:
    - refresh: every refresh_interval_ms (and on focus/visibility) re-fetch the
      entity and adopt it as canonical state;
    - tick: while tracking, every tick_interval_ms recompute the displayed
      elapsed time from the last canonical start/total. Never calls the server.

    `scheduler` provides call_later(delay_ms, fn) -> handle, cancel(handle) and
    submit(fn, on_done). submit runs a blocking server call off the UI thread,
    in submission order, and later calls on_done(result, error) back on the UI
    thread. The tkinter widget passes one built on after() and a worker thread.
    """

    def __init__(
        self,
        client: TrackingClient,
        kind: str,
        entity_id: str,
        scheduler,
        config: Optional[PollerConfig] = None,
        clock=None,
    ):
        self.client = client
        self.kind = kind
        self.entity_id = entity_id
        self.scheduler = scheduler
        self.config = config or PollerConfig()
        self.clock = clock or SystemClock()

        self._timer: Optional[RemoteTimer] = None
        self._elapsed = 0
        self._busy = False
        self._fetching = False
        self._error: Optional[str] = None
        self._mounted = False

        self._refresh_job: Any = None
        self._tick_job: Any = None
        self._recovery_job: Any = None

        self._on_change: Optional[Callable[[TimerView], None]] = None
        self._on_time_update: Optional[Callable[[RemoteTimer], None]] = None
        self._on_error: Optional[Callable[[str], None]] = None

    # ----- Callbacks -----
    def set_on_change(self, fn: Callable[[TimerView], None]) -> None:
        self._on_change = fn

    def set_on_time_update(self, fn: Callable[[RemoteTimer], None]) -> None:
        self._on_time_update = fn

    def set_on_error(self, fn: Callable[[str], None]) -> None:
        self._on_error = fn

    def _emit_change(self) -> None:
        if self._on_change:
            self._on_change(self.view())

    def _emit_time_update(self, remote: RemoteTimer) -> None:
        if self._on_time_update:
            self._on_time_update(remote)

    def _emit_error(self, message: str) -> None:
        if self._on_error:
            self._on_error(message)

    # ----- State -----
    @property
    def is_tracking(self) -> bool:
        return bool(self._timer and self._timer.is_tracking)

    @property
    def mounted(self) -> bool:
        return self._mounted

    def view(self) -> TimerView:
        return TimerView(
            label=self._timer.label if self._timer else self.entity_id,
            is_tracking=self.is_tracking,
            elapsed=self._elapsed,
            busy=self._busy,
            error=self._error,
        )

    # ----- Lifecycle -----
    def mount(self) -> "ReconciliationPoller":
        if self._mounted:
            return self
        self._mounted = True
        self.refresh()
        self._arm_refresh()
        return self

    def unmount(self) -> None:
        self._mounted = False
        for attr in ("_refresh_job", "_tick_job", "_recovery_job"):
            job = getattr(self, attr)
            if job is not None:
                self.scheduler.cancel(job)
                setattr(self, attr, None)

    def __enter__(self) -> "ReconciliationPoller":
        return self.mount()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unmount()

    # ----- Reconciliation -----
    def refresh(self) -> bool:
        """
        Request canonical state; it is adopted when the fetch completes. A
        failed fetch leaves local state as it was (stale but consistent).
        Returns False when unmounted or while a fetch is still in flight.
        """
        if not self._mounted or self._fetching:
            return False
        self._fetching = True
        self.scheduler.submit(partial(self.client.fetch, self.kind, self.entity_id), self._on_fetched)
        return True

    def _on_fetched(self, remote: Optional[RemoteTimer], error: Optional[BaseException]) -> None:
        self._fetching = False
        if not self._mounted:
            return
        if error is not None:
            if not isinstance(error, ClientError):
                raise error
            log.warning("Refresh of %s %s failed: %s", self.kind, self.entity_id, error)
            return
        self._adopt(remote)

    def on_visible(self) -> None:
        self.refresh()

    def on_focus(self) -> None:
        self.refresh()

    def _adopt(self, remote: RemoteTimer) -> None:
        if self._timer is None or self._timer.is_tracking != remote.is_tracking:
            log.debug(
                "%s %s tracking=%s (canonical)", self.kind, self.entity_id, remote.is_tracking
            )
        self._timer = remote
        self._error = None
        self._recompute()
        self._sync_tick()
        self._emit_change()

    def _recompute(self) -> None:
        t = self._timer
        if t is None:
            self._elapsed = 0
            return
        start = t.tracked_start_time if t.is_tracking else None
        self._elapsed = live_elapsed(t.total_tracked_time, start, self.clock.now())

    def _arm_refresh(self) -> None:
        self._refresh_job = self.scheduler.call_later(
            self.config.refresh_interval_ms, self._on_refresh_timer
        )

    def _on_refresh_timer(self) -> None:
        self._refresh_job = None
        if not self._mounted:
            return
        self.refresh()
        self._arm_refresh()

    # ----- Cosmetic tick -----
    def _sync_tick(self) -> None:
        if self.is_tracking and self._mounted:
            if self._tick_job is None:
                self._tick_job = self.scheduler.call_later(
                    self.config.tick_interval_ms, self._on_tick
                )
        elif self._tick_job is not None:
            self.scheduler.cancel(self._tick_job)
            self._tick_job = None

    def _on_tick(self) -> None:
        self._tick_job = None
        if not self._mounted or not self.is_tracking:
            return
        self._recompute()
        self._emit_change()
        self._tick_job = self.scheduler.call_later(self.config.tick_interval_ms, self._on_tick)

    # ----- User actions -----
    def start(self) -> bool:
        return self._transition("start")

    def stop(self, description: Optional[str] = None) -> bool:
        return self._transition("stop", description)

    def _transition(self, action: str, description: Optional[str] = None) -> bool:
        """Send start/stop in the background. False while another one is in flight."""
        if self._busy:
            return False
        self._busy = True
        self._error = None
        self._emit_change()

        if action == "start":
            call = partial(self.client.start, self.kind, self.entity_id)
        else:
            call = partial(self.client.stop, self.kind, self.entity_id, description=description)
        self.scheduler.submit(call, partial(self._on_transition_done, action))
        return True

    def _on_transition_done(
        self,
        action: str,
        remote: Optional[RemoteTimer],
        error: Optional[BaseException],
    ) -> None:
        self._busy = False
        if not self._mounted:
            return
        if error is not None:
            if not isinstance(error, ClientError):
                self._emit_change()
                raise error
            self._error = f"Failed to {action} time tracking: {error}"
            log.warning("%s %s: %s", self.kind, self.entity_id, self._error)
            self._emit_error(self._error)
            self._emit_change()
            self._schedule_recovery()
            return

        self._adopt(remote)
        self._emit_time_update(remote)
        log.info("%s %s %s", self.kind, self.entity_id, "started" if action == "start" else "stopped")

    def _schedule_recovery(self) -> None:
        if not self._mounted:
            return
        if self._recovery_job is not None:
            self.scheduler.cancel(self._recovery_job)
        self._recovery_job = self.scheduler.call_later(
            self.config.recovery_delay_ms, self._on_recovery
        )

    def _on_recovery(self) -> None:
        self._recovery_job = None
        self.refresh()
