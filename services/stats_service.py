# -*- coding: utf-8 -*-

from datetime import datetime
from typing import List, Optional

from core.clock import SystemClock, start_of_day
from core.timer_state import TimerState, displayed_elapsed
from domain.errors import NotFoundError
from domain.models import OWNER_PROJECT, OWNER_TASK, ProjectSummary, TimeEntry
from storage.db import Database
from storage.repos import ProjectRepo, TaskRepo, TimeEntryRepo


class StatsService:
    def __init__(self, db: Database, clock=None):
        self.db = db
        self.clock = clock or SystemClock()
        self.tasks = TaskRepo(db)
        self.projects = ProjectRepo(db)
        self.entries = TimeEntryRepo(db)

    def entries_for_task(self, task_id: str) -> List[TimeEntry]:
        with self.db.reading():
            if self.tasks.get(task_id) is None:
                raise NotFoundError(OWNER_TASK, task_id)
            return self.entries.list_for_task(task_id)

    def entries_for_project(self, project_id: str) -> List[TimeEntry]:
        with self.db.reading():
            if self.projects.get(project_id) is None:
                raise NotFoundError(OWNER_PROJECT, project_id)
            return self.entries.list_for_project(project_id)

    def project_summary(self, project_id: str, now: Optional[datetime] = None) -> ProjectSummary:
        """
        Project-level seconds and the sum over its tasks, both including the
        live interval of any running timer.
        """
        now = now or self.clock.now()
        with self.db.reading():
            project = self.projects.get(project_id)
            if project is None:
                raise NotFoundError(OWNER_PROJECT, project_id)
            tasks = self.tasks.list_for_project(project_id)

        project_seconds = displayed_elapsed(TimerState.of(OWNER_PROJECT, project), now)
        task_seconds = sum(displayed_elapsed(TimerState.of(OWNER_TASK, t), now) for t in tasks)
        return ProjectSummary(
            project_id=project_id,
            project_seconds=project_seconds,
            task_seconds=task_seconds,
        )

    def total_today(self, account_id: str, now: Optional[datetime] = None) -> int:
        """Closed seconds for the account whose interval started since UTC midnight."""
        now = now or self.clock.now()
        with self.db.reading():
            return self.entries.sum_closed_since(account_id, start_of_day(now))
