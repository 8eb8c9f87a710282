"""
Request and response models for the tallytrack API.

JSON field names are camelCase (isTracking, trackedStartTime, ...); Python
attributes stay snake_case.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from core.timer_state import TimerState, displayed_elapsed
from domain.models import OWNER_PROJECT, OWNER_TASK, Project, ProjectSummary, Task, TimeEntry


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskTrackingRequest(CamelModel):
    action: Literal["start", "stop"] = Field(..., description="Timer transition")
    description: Optional[str] = Field(
        None, max_length=2000, description="Note stored on the closed entry (stop only)"
    )


class ProjectTrackingRequest(CamelModel):
    action: Literal["start", "stop"] = Field(..., description="Timer transition")


class ProjectCreateRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    account_id: str = Field("", max_length=200)


class TaskCreateRequest(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)


class TaskOut(CamelModel):
    id: str
    title: str
    project_id: Optional[str] = None
    account_id: str
    is_tracking: bool
    tracked_start_time: Optional[datetime] = None
    total_tracked_time: int = Field(..., description="Accumulated seconds of closed intervals")
    elapsed_time: int = Field(..., description="Total plus the running interval, in seconds")
    updated_at: datetime

    @classmethod
    def from_domain(cls, task: Task, now: datetime) -> "TaskOut":
        return cls(
            id=task.id,
            title=task.title,
            project_id=task.project_id,
            account_id=task.account_id,
            is_tracking=task.is_tracking,
            tracked_start_time=task.tracked_start_time,
            total_tracked_time=task.total_tracked_time,
            elapsed_time=displayed_elapsed(TimerState.of(OWNER_TASK, task), now),
            updated_at=task.updated_at,
        )


class ProjectOut(CamelModel):
    id: str
    name: str
    account_id: str
    is_tracking: bool
    tracked_start_time: Optional[datetime] = None
    total_tracked_time: int = Field(..., description="Accumulated seconds of closed intervals")
    elapsed_time: int = Field(..., description="Total plus the running interval, in seconds")
    updated_at: datetime

    @classmethod
    def from_domain(cls, project: Project, now: datetime) -> "ProjectOut":
        return cls(
            id=project.id,
            name=project.name,
            account_id=project.account_id,
            is_tracking=project.is_tracking,
            tracked_start_time=project.tracked_start_time,
            total_tracked_time=project.total_tracked_time,
            elapsed_time=displayed_elapsed(TimerState.of(OWNER_PROJECT, project), now),
            updated_at=project.updated_at,
        )


class TimeEntryOut(CamelModel):
    id: str
    task_id: Optional[str] = None
    project_id: Optional[str] = None
    account_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    description: Optional[str] = None

    @classmethod
    def from_domain(cls, entry: TimeEntry) -> "TimeEntryOut":
        return cls(
            id=entry.id,
            task_id=entry.task_id,
            project_id=entry.project_id,
            account_id=entry.account_id,
            start_time=entry.start_time,
            end_time=entry.end_time,
            duration=entry.duration,
            description=entry.description,
        )


class ProjectSummaryOut(CamelModel):
    project_id: str
    project_seconds: int
    task_seconds: int
    total_seconds: int

    @classmethod
    def from_domain(cls, summary: ProjectSummary) -> "ProjectSummaryOut":
        return cls(
            project_id=summary.project_id,
            project_seconds=summary.project_seconds,
            task_seconds=summary.task_seconds,
            total_seconds=summary.total_seconds,
        )


class ErrorResponse(CamelModel):
    status_code: int = Field(..., description="HTTP status code")
    error_type: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    timestamp: str = Field(..., description="Error timestamp")
    path: Optional[str] = Field(None, description="Request path")
    request_id: Optional[str] = Field(None, description="Request ID for tracking")


class TodayTotalOut(CamelModel):
    account_id: str
    since: datetime = Field(..., description="UTC midnight the total counts from")
    total_seconds: int = Field(..., description="Closed entries started since `since`")


class HealthOut(CamelModel):
    status: str
    database: str
