# -*- coding: utf-8 -*-

from datetime import datetime
from typing import List, Optional

from common.logger import get_logger
from core import timer_state
from core.clock import SystemClock
from core.timer_state import TimerState
from domain.errors import NotFoundError
from domain.models import (
    OWNER_PROJECT,
    OWNER_TASK,
    PROJECT_ENTRY_DESCRIPTION,
    Project,
    Task,
)
from storage.db import Database
from storage.repos import ProjectRepo, TaskRepo, TimeEntryRepo

log = get_logger("coordinator")


class TimerCoordinator:
    """
    Single entry point for task and project timers.

    Keeps the invariant that, within one project, at most one of
    {project timer, any task timer} is running. Every public operation is one
    database transaction using a single `now` for all cascaded changes, so a
    cascade is applied completely or not at all.
    """

    def __init__(self, db: Database, clock=None):
        self.db = db
        self.clock = clock or SystemClock()
        self.tasks = TaskRepo(db)
        self.projects = ProjectRepo(db)
        self.entries = TimeEntryRepo(db)

    # ----- Reads -----
    def get_task(self, task_id: str) -> Task:
        with self.db.reading():
            return self._require_task(task_id)

    def get_project(self, project_id: str) -> Project:
        with self.db.reading():
            return self._require_project(project_id)

    def now(self) -> datetime:
        return self.clock.now()

    # ----- Public API -----
    def start_task(self, task_id: str) -> Task:
        with self.db.transaction():
            now = self.clock.now()
            task = self._require_task(task_id)
            started = timer_state.start(TimerState.of(OWNER_TASK, task), now)

            if task.project_id:
                project = self.projects.get(task.project_id)
                if project is not None and project.is_tracking:
                    self._stop_project(project, now)
                else:
                    for sibling in self.tasks.list_tracking_for_project(task.project_id):
                        self._stop_task(sibling, now)

            self.tasks.set_tracking(task.id, started.fields(), now)
            self.entries.create(OWNER_TASK, task.id, task.account_id, now)
            task = self.tasks.get(task.id)

        log.info("Task %s started at %s", task.id, now.isoformat())
        return task

    def stop_task(self, task_id: str, description: Optional[str] = None) -> Task:
        with self.db.transaction():
            now = self.clock.now()
            task = self._require_task(task_id)
            elapsed = self._stop_task(task, now, description=description)
            task = self.tasks.get(task.id)

        log.info(
            "Task %s stopped after %ss (total %ss)",
            task.id,
            elapsed,
            task.total_tracked_time,
        )
        return task

    def start_project(self, project_id: str) -> Project:
        with self.db.transaction():
            now = self.clock.now()
            project = self._require_project(project_id)
            started = timer_state.start(TimerState.of(OWNER_PROJECT, project), now)

            stopped = self._stop_tasks_of(project.id, now)

            self.projects.set_tracking(project.id, started.fields(), now)
            self.entries.create(
                OWNER_PROJECT,
                project.id,
                project.account_id,
                now,
                description=PROJECT_ENTRY_DESCRIPTION,
            )
            project = self.projects.get(project.id)

        log.info(
            "Project %s started at %s (stopped %d task timer(s))",
            project.id,
            now.isoformat(),
            len(stopped),
        )
        return project

    def stop_project(self, project_id: str) -> Project:
        with self.db.transaction():
            now = self.clock.now()
            project = self._require_project(project_id)
            elapsed, stopped = self._stop_project(project, now)
            project = self.projects.get(project.id)

        log.info(
            "Project %s stopped after %ss (total %ss, cascaded to %d task(s))",
            project.id,
            elapsed,
            project.total_tracked_time,
            len(stopped),
        )
        return project

    # ----- Transitions (run inside a transaction) -----
    def _require_task(self, task_id: str) -> Task:
        task = self.tasks.get(task_id)
        if task is None:
            raise NotFoundError(OWNER_TASK, task_id)
        return task

    def _require_project(self, project_id: str) -> Project:
        project = self.projects.get(project_id)
        if project is None:
            raise NotFoundError(OWNER_PROJECT, project_id)
        return project

    def _stop_task(self, task: Task, now: datetime, description: Optional[str] = None) -> int:
        idle, elapsed = timer_state.stop(TimerState.of(OWNER_TASK, task), now)
        self.tasks.set_tracking(task.id, idle.fields(), now)
        self._close_entry(OWNER_TASK, task.id, task.account_id, task.tracked_start_time, now, elapsed, description)
        return elapsed

    def _stop_tasks_of(self, project_id: str, now: datetime) -> List[str]:
        stopped = []
        for task in self.tasks.list_tracking_for_project(project_id):
            self._stop_task(task, now)
            stopped.append(task.id)
        return stopped

    def _stop_project(self, project: Project, now: datetime):
        """Stop a project and every running task under it. Returns (elapsed, task ids)."""
        idle, elapsed = timer_state.stop(TimerState.of(OWNER_PROJECT, project), now)
        stopped = self._stop_tasks_of(project.id, now)
        self.projects.set_tracking(project.id, idle.fields(), now)
        self._close_entry(
            OWNER_PROJECT,
            project.id,
            project.account_id,
            project.tracked_start_time,
            now,
            elapsed,
            None,
        )
        return elapsed, stopped

    def _close_entry(
        self,
        owner_kind: str,
        owner_id: str,
        account_id: str,
        started_at: datetime,
        now: datetime,
        elapsed: int,
        description: Optional[str],
    ) -> None:
        closed = self.entries.close_open(owner_kind, owner_id, now, elapsed, description)
        if closed == 0:
            # tracking flag without a ledger row; record the interval so the
            # ledger still accounts for the time added to the total
            log.warning(
                "No open time entry for %s %s; recording closed entry", owner_kind, owner_id
            )
            self.entries.create(owner_kind, owner_id, account_id, started_at, description)
            self.entries.close_open(owner_kind, owner_id, now, elapsed, description)
        elif closed > 1:
            log.warning("Closed %d open time entries for %s %s", closed, owner_kind, owner_id)
