# services/task_service.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

from typing import List, Optional

from common.logger import get_logger
from core.clock import SystemClock
from domain.errors import NotFoundError, TaskMoveError
from domain.models import OWNER_PROJECT, OWNER_TASK, Project, Task
from storage.db import Database
from storage.repos import ProjectRepo, TaskRepo

log = get_logger("tasks")


class TaskService:
    """Creates projects/tasks and moves tasks between projects. Never touches timers."""

    def __init__(self, db: Database, clock=None):
        self.db = db
        self.clock = clock or SystemClock()
        self.tasks = TaskRepo(db)
        self.projects = ProjectRepo(db)

    # ---- projects ----
    def create_project(self, name: str, account_id: str = "") -> Project:
        name = (name or "").strip()
        if not name:
            raise ValueError("Project name cannot be empty.")
        with self.db.transaction():
            project = self.projects.create(name, account_id, self.clock.now())
        log.debug("Created project %s", project.id)
        return project

    # ---- tasks ----
    def create_task(self, title: str, project_id: Optional[str] = None, account_id: str = "") -> Task:
        title = (title or "").strip()
        if not title:
            raise ValueError("Task title cannot be empty.")
        with self.db.transaction():
            if project_id:
                project = self.projects.get(project_id)
                if project is None:
                    raise NotFoundError(OWNER_PROJECT, project_id)
                account_id = account_id or project.account_id
            task = self.tasks.create(
                title,
                self.clock.now(),
                project_id=project_id,
                account_id=account_id,
            )
        log.debug("Created task %s in project %s", task.id, project_id)
        return task

    def list_project_tasks(self, project_id: str) -> List[Task]:
        with self.db.reading():
            if self.projects.get(project_id) is None:
                raise NotFoundError(OWNER_PROJECT, project_id)
            return self.tasks.list_for_project(project_id)

    def move_task(self, task_id: str, project_id: Optional[str]) -> Task:
        """
        Reassign a task to another project (or none). Refused while the task's
        timer runs, since the running interval would otherwise escape the new
        project's exclusivity check.
        """
        with self.db.transaction():
            task = self.tasks.get(task_id)
            if task is None:
                raise NotFoundError(OWNER_TASK, task_id)
            if task.is_tracking:
                raise TaskMoveError(f"Stop the timer before moving task {task_id}.")

            account_id = task.account_id
            if project_id:
                project = self.projects.get(project_id)
                if project is None:
                    raise NotFoundError(OWNER_PROJECT, project_id)
                account_id = project.account_id

            self.tasks.set_project(task_id, project_id, account_id, self.clock.now())
            task = self.tasks.get(task_id)
        log.info("Moved task %s to project %s", task_id, project_id)
        return task
