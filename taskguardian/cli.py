"""
Task Guardian CLI — bootstrap and management commands.

Commands:
- taskguardian init          — Create tables, optionally seed an ADMIN user
- taskguardian run           — Serve the API with uvicorn
- taskguardian check-config  — Validate and print the effective configuration
- taskguardian logs cleanup  — Apply log retention (delete / gzip old files)
- taskguardian logs show     — Print recent structured log entries
"""

from __future__ import annotations

import argparse
import getpass
import json
import logging
import sys
from datetime import date, timedelta
from typing import Optional

logger = logging.getLogger("taskguardian.cli")


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="taskguardian",
        description="Task Guardian — task management API",
    )
    parser.add_argument(
        "--config", default=None, help="Path to taskguardian.yaml (default: auto-discover)"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # taskguardian init
    init_parser = subparsers.add_parser("init", help="Create tables and seed an admin")
    init_parser.add_argument("--admin-username", help="Create an ADMIN user with this name")
    init_parser.add_argument(
        "--admin-password", help="Admin password (prompted if --admin-username is given)"
    )

    # taskguardian run
    run_parser = subparsers.add_parser("run", help="Start the API server")
    run_parser.add_argument("--host", default="0.0.0.0", help="Host to bind (default: 0.0.0.0)")
    run_parser.add_argument("--port", type=int, default=None, help="Port (default: config port)")

    # taskguardian check-config
    subparsers.add_parser("check-config", help="Validate configuration")

    # taskguardian logs
    logs_parser = subparsers.add_parser("logs", help="Inspect or clean structured logs")
    logs_sub = logs_parser.add_subparsers(dest="logs_command")
    logs_sub.add_parser("cleanup", help="Delete and compress old log files")
    show_parser = logs_sub.add_parser("show", help="Print recent log entries")
    show_parser.add_argument("area", help="Log area (api, auth, tasks, users, system)")
    show_parser.add_argument("category", nargs="?", default="execution", help="Category (default: execution)")
    show_parser.add_argument("--days", type=int, default=7, help="How many days back (default: 7)")
    show_parser.add_argument("--limit", type=int, default=50, help="Max entries (default: 50)")

    args = parser.parse_args(argv)

    if args.command == "init":
        return cmd_init(args)
    elif args.command == "run":
        return cmd_run(args)
    elif args.command == "check-config":
        return cmd_check_config(args)
    elif args.command == "logs":
        return cmd_logs(args)
    else:
        parser.print_help()
        return 0


def _load(args: argparse.Namespace):
    from taskguardian.engine.config import load_config
    from taskguardian.engine.errors import TaskGuardianConfigError

    try:
        return load_config(args.config)
    except TaskGuardianConfigError as e:
        print(f"[ERROR] {e.message}")
        for err in e.context.get("validation_errors") or []:
            loc = ".".join(str(p) for p in err.get("loc", ()))
            print(f"  {loc}: {err.get('msg')}")
        return None


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cmd_init(args: argparse.Namespace) -> int:
    """
    Bootstrap the database:
    1. Load config
    2. Create all tables
    3. Optionally create an ADMIN user
    """
    print("=" * 60)
    print("  Task Guardian Initialization")
    print("=" * 60)

    config = _load(args)
    if config is None:
        return 1
    print("[OK] Configuration loaded")

    from taskguardian.db.session import Database
    from taskguardian.engine.errors import TaskGuardianError
    from taskguardian.stores.users import UserStore

    db = Database(config.database)
    try:
        db.create_tables()
        print("[OK] Tables created")

        if args.admin_username:
            password = args.admin_password or getpass.getpass("Admin password: ")
            if not 5 <= len(password) <= 1024:
                print("[ERROR] Password must be between 5 and 1024 characters")
                return 1
            users = UserStore(db, bcrypt_rounds=config.security.bcrypt_rounds)
            try:
                admin = users.create(args.admin_username, password, "ADMIN")
            except TaskGuardianError as e:
                print(f"[ERROR] {e.message}")
                return 1
            print(f"[OK] Admin user '{admin.username}' created (id: {admin.id})")

        logger.info(f"Database initialized (admin seeded: {bool(args.admin_username)})")
        print("\nInitialization complete.")
        return 0
    finally:
        db.dispose()


def cmd_run(args: argparse.Namespace) -> int:
    """Serve the API with uvicorn."""
    config = _load(args)
    if config is None:
        return 1
    if not config.database.url:
        print("[ERROR] database.url (or DATABASE_URL) is required")
        return 1

    import uvicorn

    from taskguardian.api.app import create_app

    _configure_logging(config.logging.level)
    port = args.port or config.port
    print(f"Starting {config.name} on http://{args.host}:{port} (docs: /docs)")
    try:
        uvicorn.run(create_app(config), host=args.host, port=port)
    except KeyboardInterrupt:
        print("\nServer stopped.")
    return 0


def cmd_check_config(args: argparse.Namespace) -> int:
    """Print the effective configuration with secrets masked."""
    config = _load(args)
    if config is None:
        return 1
    print(json.dumps(config.masked(), indent=2))
    print("[OK] Configuration valid")
    return 0


def cmd_logs(args: argparse.Namespace) -> int:
    """Run log retention or print recent entries from the JSONL files."""
    config = _load(args)
    if config is None:
        return 1

    if args.logs_command == "cleanup":
        from taskguardian.api.app import run_log_retention

        result = run_log_retention(config)
        print(f"[OK] Deleted {result['deleted']} file(s), compressed {result['compressed']}")
        return 0

    if args.logs_command == "show":
        from taskguardian.engine.logging import LOG_AREA_CATEGORIES, FileLogger

        if args.category not in LOG_AREA_CATEGORIES.get(args.area, []):
            print(f"[ERROR] Unknown log area/category: {args.area}/{args.category}")
            return 1
        end = date.today()
        entries = FileLogger(config.logging.directory).query(
            args.area,
            args.category,
            start_date=end - timedelta(days=args.days),
            end_date=end,
            limit=args.limit,
        )
        for entry in entries:
            print(json.dumps(entry, default=str))
        print(f"[OK] {len(entries)} entries")
        return 0

    print("Usage: taskguardian logs {cleanup,show}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
