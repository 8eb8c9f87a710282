# storage/repos.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from core.clock import elapsed_seconds, parse_iso, to_iso
from domain.models import OWNER_PROJECT, OWNER_TASK, Project, Task, TimeEntry
from storage.db import Database

# Repos never open transactions or commit; callers wrap them in
# Database.transaction() / Database.reading().

_TRACKING_COLUMNS = ("is_tracking", "tracked_start_time", "total_tracked_time")


def _new_id() -> str:
    return str(uuid.uuid4())


def _tracking_params(fields: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(fields) - set(_TRACKING_COLUMNS)
    if unknown:
        raise ValueError(f"Not a tracking field: {sorted(unknown)}")
    out = dict(fields)
    if "is_tracking" in out:
        out["is_tracking"] = 1 if out["is_tracking"] else 0
    if "tracked_start_time" in out:
        out["tracked_start_time"] = to_iso(out["tracked_start_time"])
    return out


def _project_from_row(r) -> Project:
    return Project(
        id=r["id"],
        name=r["name"],
        account_id=r["account_id"],
        is_tracking=bool(r["is_tracking"]),
        tracked_start_time=parse_iso(r["tracked_start_time"]),
        total_tracked_time=int(r["total_tracked_time"] or 0),
        created_at=parse_iso(r["created_at"]),
        updated_at=parse_iso(r["updated_at"]),
    )


def _task_from_row(r) -> Task:
    return Task(
        id=r["id"],
        title=r["title"],
        project_id=r["project_id"],
        account_id=r["account_id"],
        is_tracking=bool(r["is_tracking"]),
        tracked_start_time=parse_iso(r["tracked_start_time"]),
        total_tracked_time=int(r["total_tracked_time"] or 0),
        created_at=parse_iso(r["created_at"]),
        updated_at=parse_iso(r["updated_at"]),
    )


def _entry_from_row(r) -> TimeEntry:
    return TimeEntry(
        id=r["id"],
        task_id=r["task_id"],
        project_id=r["project_id"],
        account_id=r["account_id"],
        start_time=parse_iso(r["start_time"]),
        end_time=parse_iso(r["end_time"]),
        duration=r["duration"],
        description=r["description"],
    )


class ProjectRepo:
    def __init__(self, db: Database):
        self.db = db

    def create(self, name: str, account_id: str, now: datetime) -> Project:
        pid = _new_id()
        ts = to_iso(now)
        self.db.conn.execute(
            """
            INSERT INTO projects(id, name, account_id, created_at, updated_at)
            VALUES(?,?,?,?,?)
            """,
            (pid, name, account_id or "", ts, ts),
        )
        return self.get(pid)

    def get(self, project_id: str) -> Optional[Project]:
        r = self.db.conn.execute(
            "SELECT * FROM projects WHERE id=?",
            (project_id,),
        ).fetchone()
        return _project_from_row(r) if r else None

    def set_tracking(self, project_id: str, fields: Dict[str, Any], now: datetime) -> None:
        """Tracking columns are written by TimerCoordinator only."""
        params = _tracking_params(fields)
        assignments = ", ".join(f"{k}=:{k}" for k in params)
        params.update(id=project_id, updated_at=to_iso(now))
        self.db.conn.execute(
            f"UPDATE projects SET {assignments}, updated_at=:updated_at WHERE id=:id",
            params,
        )


class TaskRepo:
    def __init__(self, db: Database):
        self.db = db

    def create(
        self,
        title: str,
        now: datetime,
        project_id: Optional[str] = None,
        account_id: str = "",
    ) -> Task:
        tid = _new_id()
        ts = to_iso(now)
        self.db.conn.execute(
            """
            INSERT INTO tasks(id, title, project_id, account_id, created_at, updated_at)
            VALUES(?,?,?,?,?,?)
            """,
            (tid, title, project_id, account_id or "", ts, ts),
        )
        return self.get(tid)

    def get(self, task_id: str) -> Optional[Task]:
        r = self.db.conn.execute(
            "SELECT * FROM tasks WHERE id=?",
            (task_id,),
        ).fetchone()
        return _task_from_row(r) if r else None

    def list_for_project(self, project_id: str) -> List[Task]:
        rows = self.db.conn.execute(
            "SELECT * FROM tasks WHERE project_id=? ORDER BY title COLLATE NOCASE ASC, created_at ASC",
            (project_id,),
        ).fetchall()
        return [_task_from_row(r) for r in rows]

    def list_tracking_for_project(self, project_id: str) -> List[Task]:
        rows = self.db.conn.execute(
            """
            SELECT * FROM tasks
            WHERE project_id=? AND is_tracking=1
            ORDER BY created_at ASC
            """,
            (project_id,),
        ).fetchall()
        return [_task_from_row(r) for r in rows]

    def set_tracking(self, task_id: str, fields: Dict[str, Any], now: datetime) -> None:
        """Tracking columns are written by TimerCoordinator only."""
        params = _tracking_params(fields)
        assignments = ", ".join(f"{k}=:{k}" for k in params)
        params.update(id=task_id, updated_at=to_iso(now))
        self.db.conn.execute(
            f"UPDATE tasks SET {assignments}, updated_at=:updated_at WHERE id=:id",
            params,
        )

    def set_project(self, task_id: str, project_id: Optional[str], account_id: str, now: datetime) -> None:
        self.db.conn.execute(
            "UPDATE tasks SET project_id=?, account_id=?, updated_at=? WHERE id=?",
            (project_id, account_id or "", to_iso(now), task_id),
        )


class TimeEntryRepo:
    """Append-only ledger of tracked intervals."""

    def __init__(self, db: Database):
        self.db = db

    def create(
        self,
        owner_kind: str,
        owner_id: str,
        account_id: str,
        start_time: datetime,
        description: Optional[str] = None,
    ) -> TimeEntry:
        eid = _new_id()
        task_id = owner_id if owner_kind == OWNER_TASK else None
        project_id = owner_id if owner_kind == OWNER_PROJECT else None
        self.db.conn.execute(
            """
            INSERT INTO time_entries(id, task_id, project_id, account_id, start_time, description)
            VALUES(?,?,?,?,?,?)
            """,
            (eid, task_id, project_id, account_id or "", to_iso(start_time), description),
        )
        return self.get(eid)

    def get(self, entry_id: str) -> Optional[TimeEntry]:
        r = self.db.conn.execute(
            "SELECT * FROM time_entries WHERE id=?",
            (entry_id,),
        ).fetchone()
        return _entry_from_row(r) if r else None

    def close_open(
        self,
        owner_kind: str,
        owner_id: str,
        end_time: datetime,
        duration: int,
        description: Optional[str] = None,
    ) -> int:
        """
        Close the owner's open entries. Returns the number of rows closed.

        The newest open entry gets `duration` and the description (only
        overwritten when one is given). Older leftovers are closed at
        `end_time` with their own start-to-end span.
        """
        open_entries = sorted(
            self.open_for(owner_kind, owner_id), key=lambda e: e.start_time, reverse=True
        )
        for i, entry in enumerate(open_entries):
            if i == 0:
                seconds, note = int(duration), description
            else:
                seconds, note = elapsed_seconds(entry.start_time, end_time), None
            self.db.conn.execute(
                """
                UPDATE time_entries
                SET end_time=?, duration=?, description=COALESCE(?, description)
                WHERE id=?
                """,
                (to_iso(end_time), seconds, note, entry.id),
            )
        return len(open_entries)

    def open_for(self, owner_kind: str, owner_id: str) -> List[TimeEntry]:
        column = "task_id" if owner_kind == OWNER_TASK else "project_id"
        rows = self.db.conn.execute(
            f"SELECT * FROM time_entries WHERE {column}=? AND end_time IS NULL",
            (owner_id,),
        ).fetchall()
        return [_entry_from_row(r) for r in rows]

    def list_for_task(self, task_id: str) -> List[TimeEntry]:
        rows = self.db.conn.execute(
            "SELECT * FROM time_entries WHERE task_id=? ORDER BY start_time DESC",
            (task_id,),
        ).fetchall()
        return [_entry_from_row(r) for r in rows]

    def list_for_project(self, project_id: str) -> List[TimeEntry]:
        # project-level entries plus the entries of its tasks
        rows = self.db.conn.execute(
            """
            SELECT * FROM time_entries
            WHERE project_id=?
               OR task_id IN (SELECT id FROM tasks WHERE project_id=?)
            ORDER BY start_time DESC
            """,
            (project_id, project_id),
        ).fetchall()
        return [_entry_from_row(r) for r in rows]

    def sum_closed_since(self, account_id: str, since: datetime) -> int:
        row = self.db.conn.execute(
            """
            SELECT COALESCE(SUM(duration), 0) AS total
            FROM time_entries
            WHERE account_id=?
              AND end_time IS NOT NULL
              AND start_time >= ?
            """,
            (account_id, to_iso(since)),
        ).fetchone()
        return int(row["total"] or 0)
