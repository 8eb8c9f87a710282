# -*- coding: utf-8 -*-

import queue
import tkinter as tk
from concurrent.futures import Future, ThreadPoolExecutor
from tkinter import ttk
from typing import Any, Callable, Optional

from client.api_client import RemoteTimer
from client.reconciler import ReconciliationPoller, TimerView
from core.clock import format_time


class TkScheduler:
    """
    call_later/cancel on top of a widget's after()/after_cancel(), plus
    submit() for server calls.

    Submitted calls run one at a time on a worker thread. Finished futures
    go through a queue that the Tk thread drains with after(), since Tk
    must only be touched from its own thread.
    """

    POLL_MS = 50

    def __init__(self, widget: tk.Misc):
        self.widget = widget
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tallytrack-net")
        self._done: "queue.Queue[tuple]" = queue.Queue()
        self._in_flight = 0
        self._drain_job: Any = None

    def call_later(self, delay_ms: int, fn: Callable[[], None]):
        return self.widget.after(delay_ms, fn)

    def cancel(self, handle) -> None:
        try:
            self.widget.after_cancel(handle)
        except tk.TclError:
            # widget already destroyed
            pass

    def submit(self, fn: Callable[[], Any], on_done: Callable[[Any, Optional[BaseException]], None]) -> None:
        self._in_flight += 1
        future = self._executor.submit(fn)
        future.add_done_callback(lambda f: self._done.put((f, on_done)))
        if self._drain_job is None:
            self._drain_job = self.widget.after(self.POLL_MS, self._drain)

    def _drain(self) -> None:
        self._drain_job = None
        try:
            while True:
                try:
                    future, on_done = self._done.get_nowait()
                except queue.Empty:
                    break
                self._in_flight -= 1
                self._deliver(future, on_done)
        finally:
            if self._in_flight:
                self._drain_job = self.widget.after(self.POLL_MS, self._drain)

    @staticmethod
    def _deliver(future: Future, on_done) -> None:
        error = future.exception()
        if error is not None:
            on_done(None, error)
        else:
            on_done(future.result(), None)

    def shutdown(self) -> None:
        if self._drain_job is not None:
            self.cancel(self._drain_job)
            self._drain_job = None
        # a request still running finishes on its own; its result is dropped
        self._executor.shutdown(wait=False)


class TrackerWidget(ttk.Frame):
    def __init__(
        self,
        master,
        make_poller: Callable[[TkScheduler], ReconciliationPoller],
        on_time_update: Optional[Callable[[RemoteTimer], None]] = None,
    ):
        super().__init__(master)

        self.scheduler = TkScheduler(self)
        self.poller = make_poller(self.scheduler)
        self.on_time_update = on_time_update

        self._build_ui()

        # wire callbacks from poller -> widget UI
        self.poller.set_on_change(self._render)
        self.poller.set_on_error(self._on_error)
        self.poller.set_on_time_update(self._on_time_update)

        # another window or device may have changed the timer meanwhile;
        # children share the toplevel's bindtag, so filter on the toplevel
        self._top = self.winfo_toplevel()
        self._top.bind("<FocusIn>", self._on_top_focus, add="+")
        self._top.bind("<Map>", self._on_top_map, add="+")
        self.bind("<Destroy>", self._on_destroy)

        self.poller.mount()
        self._render(self.poller.view())

    def _build_ui(self):
        self.columnconfigure(0, weight=1)

        self.title_var = tk.StringVar(value="")
        self.time_var = tk.StringVar(value="00:00")
        self.info_var = tk.StringVar(value="Loading...")
        self.note_var = tk.StringVar(value="")

        title = ttk.Label(self, textvariable=self.title_var, font=("Sans", 12, "bold"))
        title.grid(row=0, column=0, sticky="w", pady=(0, 6))

        self.time_label = ttk.Label(
            self, textvariable=self.time_var, font=("Sans", 32, "bold")
        )
        self.time_label.grid(row=1, column=0, sticky="w", pady=(8, 4))

        self.info_label = ttk.Label(self, textvariable=self.info_var)
        self.info_label.grid(row=2, column=0, sticky="w", pady=(0, 10))

        row = ttk.Frame(self)
        row.grid(row=3, column=0, sticky="we")
        row.columnconfigure(1, weight=1)

        self.toggle_btn = ttk.Button(row, text="Start", command=self._toggle)
        self.toggle_btn.grid(row=0, column=0, padx=(0, 6))

        # stop note, tasks only
        if self.poller.kind == "task":
            self.note_entry = ttk.Entry(row, textvariable=self.note_var)
            self.note_entry.grid(row=0, column=1, sticky="we")

    def _toggle(self):
        if self.poller.is_tracking:
            note = self.note_var.get().strip() or None
            self.poller.stop(description=note)
        else:
            self.poller.start()

    # ---- Poller callbacks ----
    def _render(self, view: TimerView):
        self.title_var.set(view.label)
        self.time_var.set(format_time(view.elapsed))
        self.toggle_btn.configure(text="Stop" if view.is_tracking else "Start")
        if view.busy:
            self.toggle_btn.state(["disabled"])
        else:
            self.toggle_btn.state(["!disabled"])

        if view.error:
            self.info_var.set(view.error)
        elif view.busy:
            self.info_var.set("Working...")
        else:
            self.info_var.set("Tracking..." if view.is_tracking else "Idle")

    def _on_error(self, message: str):
        self.info_var.set(message)

    def _on_time_update(self, remote: RemoteTimer):
        self.info_var.set(
            "Time tracking started" if remote.is_tracking else "Time tracking stopped"
        )
        if not remote.is_tracking:
            self.note_var.set("")
        if self.on_time_update:
            self.on_time_update(remote)

    def _on_top_focus(self, event):
        if event.widget is self._top:
            self.poller.on_focus()

    def _on_top_map(self, event):
        if event.widget is self._top:
            self.poller.on_visible()

    def _on_destroy(self, event):
        if event.widget is self:
            self.poller.unmount()
            self.scheduler.shutdown()
