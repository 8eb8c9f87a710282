#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import argparse
import sys

from common.config import ConfigurationError, load_config
from common.logger import configure_logging, get_logger
from domain.errors import TrackingError

log = get_logger("main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tallytrack", description="Task and project time tracking")
    parser.add_argument("--config", help="JSON config file (TALLYTRACK_* env vars override it)")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the HTTP API")
    serve.add_argument("--host", help="bind address")
    serve.add_argument("--port", type=int, help="bind port")

    sub.add_parser("init-db", help="create or migrate the database schema")

    add_project = sub.add_parser("add-project", help="create a project and print its id")
    add_project.add_argument("name")
    add_project.add_argument("--account", default="", help="owning account id")

    add_task = sub.add_parser("add-task", help="create a task and print its id")
    add_task.add_argument("title")
    add_task.add_argument("--project", help="parent project id")

    tasks = sub.add_parser("tasks", help="list a project's tasks")
    tasks.add_argument("project_id")

    today = sub.add_parser("today", help="time tracked today by an account")
    today.add_argument("account_id")

    watch = sub.add_parser("watch", help="open a desktop timer for a task or project")
    watch.add_argument("kind", choices=["task", "project"])
    watch.add_argument("entity_id")
    watch.add_argument("--url", help="API base URL")
    return parser


def serve(cfg, args) -> None:
    import uvicorn

    from api.app import create_app

    host = args.host or cfg.api.host
    port = args.port or cfg.api.port
    log.info("Serving on %s:%s", host, port)
    uvicorn.run(create_app(cfg), host=host, port=port, log_config=None)


def open_db(cfg):
    from storage.db import Database

    db = Database(db_path=cfg.db.path, busy_timeout_s=cfg.db.busy_timeout_s)
    db.init_schema()
    return db


def init_db(cfg) -> None:
    open_db(cfg).close()
    log.info("Schema ready in %s", cfg.db.path)


def manage(cfg, args) -> None:
    from core.clock import format_duration, format_time
    from services.stats_service import StatsService
    from services.task_service import TaskService

    db = open_db(cfg)
    try:
        service = TaskService(db)
        if args.command == "add-project":
            print(service.create_project(args.name, account_id=args.account).id)
        elif args.command == "add-task":
            print(service.create_task(args.title, project_id=args.project).id)
        elif args.command == "tasks":
            for t in service.list_project_tasks(args.project_id):
                state = "tracking" if t.is_tracking else "idle"
                print(f"{t.id}  {format_time(t.total_tracked_time):>8}  {state:8}  {t.title}")
        elif args.command == "today":
            print(format_duration(StatsService(db).total_today(args.account_id)))
    finally:
        db.close()


def watch(cfg, args) -> None:
    import tkinter as tk

    from client.api_client import TrackingClient
    from client.reconciler import ReconciliationPoller
    from ui.tracker_widget import TrackerWidget

    client = TrackingClient(args.url or cfg.poller.base_url, timeout=cfg.poller.request_timeout_s)

    root = tk.Tk()
    root.title("tallytrack")
    widget = TrackerWidget(
        root,
        lambda scheduler: ReconciliationPoller(
            client, args.kind, args.entity_id, scheduler, config=cfg.poller
        ),
    )
    widget.pack(expand=True, fill="both", padx=10, pady=10)
    root.mainloop()


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        cfg = load_config(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    configure_logging(cfg.logging)

    if args.command == "serve":
        serve(cfg, args)
    elif args.command == "init-db":
        init_db(cfg)
    elif args.command == "watch":
        watch(cfg, args)
    else:
        try:
            manage(cfg, args)
        except (TrackingError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
