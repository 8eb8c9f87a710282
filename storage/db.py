#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import sqlite3
import threading
from contextlib import contextmanager
from typing import Iterator

from common.logger import get_logger
from domain.errors import TransactionFailure

log = get_logger("storage.db")


class Database:
    """
    One SQLite connection shared by the process.

    The connection runs in autocommit mode; writes go through transaction(),
    which takes the write lock up front (BEGIN IMMEDIATE) so a read-then-write
    inside it cannot interleave with another writer.
    """

    def __init__(self, db_path: str = "tallytrack.db", busy_timeout_s: float = 5.0):
        self.db_path = db_path
        self._lock = threading.RLock()
        self.conn = sqlite3.connect(
            self.db_path,
            timeout=busy_timeout_s,
            isolation_level=None,
            check_same_thread=False,
        )
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON;")

    def _table_exists(self, name: str) -> bool:
        r = self.conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (name,),
        ).fetchone()
        return bool(r)

    def _cols(self, table: str):
        return [
            r["name"]
            for r in self.conn.execute(f"PRAGMA table_info({table});").fetchall()
        ]

    def init_schema(self):
        with self.transaction() as cur:
            cur.execute("""
                CREATE TABLE IF NOT EXISTS projects (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    account_id TEXT NOT NULL DEFAULT '',
                    is_tracking INTEGER NOT NULL DEFAULT 0,
                    tracked_start_time TEXT,
                    total_tracked_time INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
            """)

            cur.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    project_id TEXT REFERENCES projects(id) ON DELETE CASCADE,
                    account_id TEXT NOT NULL DEFAULT '',
                    is_tracking INTEGER NOT NULL DEFAULT 0,
                    tracked_start_time TEXT,
                    total_tracked_time INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
            """)

            cur.execute("""
                CREATE TABLE IF NOT EXISTS time_entries (
                    id TEXT PRIMARY KEY,
                    task_id TEXT REFERENCES tasks(id) ON DELETE CASCADE,
                    project_id TEXT REFERENCES projects(id) ON DELETE CASCADE,
                    account_id TEXT NOT NULL DEFAULT '',
                    start_time TEXT NOT NULL,
                    end_time TEXT,
                    duration INTEGER,
                    CHECK ((task_id IS NULL) <> (project_id IS NULL))
                );
            """)

            # entries created before descriptions were recorded
            if "description" not in self._cols("time_entries"):
                cur.execute("ALTER TABLE time_entries ADD COLUMN description TEXT;")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_project ON tasks(project_id);")
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_entries_task ON time_entries(task_id);"
            )
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_entries_project ON time_entries(project_id);"
            )
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_entries_start ON time_entries(start_time);"
            )
        log.info("Schema ready at %s", self.db_path)

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        All-or-nothing unit of work. sqlite3 errors (including a lock that
        stays busy past the timeout) are re-raised as TransactionFailure after
        rollback; any other exception rolls back and propagates unchanged.
        """
        with self._lock:
            try:
                self.conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                log.warning("Could not begin transaction: %s", e)
                raise TransactionFailure(f"Could not begin transaction: {e}") from e

            try:
                yield self.conn
            except sqlite3.Error as e:
                self._rollback()
                log.error("Transaction rolled back: %s", e)
                raise TransactionFailure(str(e)) from e
            except BaseException:
                self._rollback()
                raise

            try:
                self.conn.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback()
                log.error("Commit failed: %s", e)
                raise TransactionFailure(f"Commit failed: {e}") from e

    @contextmanager
    def reading(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self.conn
            except sqlite3.Error as e:
                raise TransactionFailure(str(e)) from e

    def _rollback(self) -> None:
        if self.conn.in_transaction:
            self.conn.execute("ROLLBACK")

    def close(self):
        with self._lock:
            self.conn.close()
