"""
Time-tracking routes.

Handlers are plain `def` so FastAPI runs them in its threadpool; the services
underneath are synchronous and serialize on the database.
"""

from typing import List

from fastapi import APIRouter, Depends, Request, status

from api.schemas import (
    HealthOut,
    ProjectCreateRequest,
    ProjectOut,
    ProjectSummaryOut,
    ProjectTrackingRequest,
    TaskCreateRequest,
    TaskOut,
    TaskTrackingRequest,
    TimeEntryOut,
    TodayTotalOut,
)
from core.clock import start_of_day
from services.stats_service import StatsService
from services.task_service import TaskService
from services.timer_coordinator import TimerCoordinator

router = APIRouter()


def get_coordinator(request: Request) -> TimerCoordinator:
    return request.app.state.coordinator


def get_stats(request: Request) -> StatsService:
    return request.app.state.stats


def get_task_service(request: Request) -> TaskService:
    return request.app.state.tasks


@router.get("/health", response_model=HealthOut, tags=["Health"])
def health(coordinator: TimerCoordinator = Depends(get_coordinator)):
    return HealthOut(status="ok", database=coordinator.db.db_path)


# ----- tasks -----
@router.get("/tasks/{task_id}", response_model=TaskOut, tags=["Tasks"])
def get_task(task_id: str, coordinator: TimerCoordinator = Depends(get_coordinator)):
    task = coordinator.get_task(task_id)
    return TaskOut.from_domain(task, coordinator.now())


@router.post(
    "/tasks/{task_id}/time-tracking",
    response_model=TaskOut,
    summary="Start or stop a task timer",
    tags=["Tasks"],
)
def task_time_tracking(
    task_id: str,
    body: TaskTrackingRequest,
    coordinator: TimerCoordinator = Depends(get_coordinator),
):
    """
    `start` stops the parent project's timer (and any other running task of
    the project) first. `stop` closes the open entry, storing `description`
    when given.
    """
    if body.action == "start":
        task = coordinator.start_task(task_id)
    else:
        task = coordinator.stop_task(task_id, description=body.description)
    return TaskOut.from_domain(task, coordinator.now())


@router.get("/tasks/{task_id}/time-entries", response_model=List[TimeEntryOut], tags=["Tasks"])
def task_time_entries(task_id: str, stats: StatsService = Depends(get_stats)):
    return [TimeEntryOut.from_domain(e) for e in stats.entries_for_task(task_id)]


# ----- projects -----
@router.post(
    "/projects",
    response_model=ProjectOut,
    status_code=status.HTTP_201_CREATED,
    tags=["Projects"],
)
def create_project(
    body: ProjectCreateRequest,
    tasks: TaskService = Depends(get_task_service),
    coordinator: TimerCoordinator = Depends(get_coordinator),
):
    project = tasks.create_project(body.name, account_id=body.account_id)
    return ProjectOut.from_domain(project, coordinator.now())


@router.get("/projects/{project_id}", response_model=ProjectOut, tags=["Projects"])
def get_project(project_id: str, coordinator: TimerCoordinator = Depends(get_coordinator)):
    project = coordinator.get_project(project_id)
    return ProjectOut.from_domain(project, coordinator.now())


@router.post(
    "/projects/{project_id}/time-tracking",
    response_model=ProjectOut,
    summary="Start or stop a project timer",
    tags=["Projects"],
)
def project_time_tracking(
    project_id: str,
    body: ProjectTrackingRequest,
    coordinator: TimerCoordinator = Depends(get_coordinator),
):
    """Both actions stop every running task timer of the project."""
    if body.action == "start":
        project = coordinator.start_project(project_id)
    else:
        project = coordinator.stop_project(project_id)
    return ProjectOut.from_domain(project, coordinator.now())


@router.get(
    "/projects/{project_id}/time-entries",
    response_model=List[TimeEntryOut],
    tags=["Projects"],
)
def project_time_entries(project_id: str, stats: StatsService = Depends(get_stats)):
    return [TimeEntryOut.from_domain(e) for e in stats.entries_for_project(project_id)]


@router.get(
    "/projects/{project_id}/time-summary",
    response_model=ProjectSummaryOut,
    tags=["Projects"],
)
def project_time_summary(project_id: str, stats: StatsService = Depends(get_stats)):
    return ProjectSummaryOut.from_domain(stats.project_summary(project_id))


@router.get("/projects/{project_id}/tasks", response_model=List[TaskOut], tags=["Projects"])
def project_tasks(
    project_id: str,
    tasks: TaskService = Depends(get_task_service),
    coordinator: TimerCoordinator = Depends(get_coordinator),
):
    """Tasks of the project by title, each with its live elapsed time."""
    now = coordinator.now()
    return [TaskOut.from_domain(t, now) for t in tasks.list_project_tasks(project_id)]


@router.post(
    "/projects/{project_id}/tasks",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    tags=["Projects"],
)
def create_project_task(
    project_id: str,
    body: TaskCreateRequest,
    tasks: TaskService = Depends(get_task_service),
    coordinator: TimerCoordinator = Depends(get_coordinator),
):
    task = tasks.create_task(body.title, project_id=project_id)
    return TaskOut.from_domain(task, coordinator.now())


# ----- accounts -----
@router.get(
    "/accounts/{account_id}/time-today",
    response_model=TodayTotalOut,
    tags=["Accounts"],
)
def account_time_today(
    account_id: str,
    stats: StatsService = Depends(get_stats),
    coordinator: TimerCoordinator = Depends(get_coordinator),
):
    now = coordinator.now()
    return TodayTotalOut(
        account_id=account_id,
        since=start_of_day(now),
        total_seconds=stats.total_today(account_id, now=now),
    )
