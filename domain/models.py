# -*- coding: utf-8 -*-

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

OWNER_TASK = "task"
OWNER_PROJECT = "project"

PROJECT_ENTRY_DESCRIPTION = "Project-level time tracking"


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    account_id: str
    is_tracking: bool
    tracked_start_time: Optional[datetime]
    total_tracked_time: int  # seconds
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Task:
    id: str
    title: str
    project_id: Optional[str]
    account_id: str
    is_tracking: bool
    tracked_start_time: Optional[datetime]
    total_tracked_time: int  # seconds
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class TimeEntry:
    id: str
    task_id: Optional[str]
    project_id: Optional[str]
    account_id: str
    start_time: datetime
    end_time: Optional[datetime]
    duration: Optional[int]  # seconds, set on close
    description: Optional[str]

    @property
    def is_open(self) -> bool:
        return self.end_time is None


@dataclass(frozen=True)
class ProjectSummary:
    project_id: str
    project_seconds: int
    task_seconds: int

    @property
    def total_seconds(self) -> int:
        return self.project_seconds + self.task_seconds
