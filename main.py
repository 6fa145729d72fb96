"""Command-line interface for the student portal service."""

from __future__ import annotations
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Sequence

import yaml

from portal.application import PortalState, build_state
from portal.config import load_settings
from portal.errors import StorageError

logger = logging.getLogger("studentportal.main")

_DEFAULT_PORT = 3000


def _default_port() -> int:
    raw = os.getenv("PORT")
    if not raw:
        return _DEFAULT_PORT
    try:
        return int(raw)
    except ValueError:
        return _DEFAULT_PORT


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Student portal utilities")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML configuration file (default: PORTAL_CONFIG)",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address for the API")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=_default_port(),
        help=f"Port for the HTTP API (default: PORT or {_DEFAULT_PORT})",
    )

    subparsers.add_parser("init-db", help="Create the data directory and seed the course catalog")
    subparsers.add_parser("users", help="List registered users")
    subparsers.add_parser("courses", help="List the course catalog with remaining seats")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db", "users", "courses"}

    # Global options may precede the sub-command; a bare option list means ``serve``.
    leading: list[str] = []
    while args_list and args_list[0] == "--config" and len(args_list) > 1:
        leading.extend(args_list[:2])
        args_list = args_list[2:]

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args([*leading, *args_list])
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args([*leading, *args_list])
            args_list = ["serve", *args_list]

    return parser.parse_args([*leading, *args_list])


def _serve(state: PortalState, *, host: str, port: int) -> None:
    from portal.service import create_app
    import uvicorn

    logger.info("Starting student portal on http://%s:%s", host, port)
    app = create_app(state=state)
    uvicorn.run(app, host=host, port=port, log_level="info")


def _list_users(state: PortalState) -> None:
    users = state.storage.load_users()
    if not users:
        print("No users are currently registered.")
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':<36}  {'Name':<24}  {'Email':<32}  Courses")
    print("-" * 110)
    for user in users:
        courses = ", ".join(user.enrolled_course_ids) or "-"
        print(f"{user.id:<36}  {user.full_name:<24}  {user.email:<32}  {courses}")


def _list_courses(state: PortalState) -> None:
    courses = state.catalog.list()
    if not courses:
        print("The course catalog is empty.")
        return

    print(f"{'Code':<8}  {'Title':<32}  {'Instructor':<20}  {'Credits':>7}  {'Seats':>5}")
    print("-" * 80)
    for course in courses:
        print(
            f"{course.code:<8}  {course.title:<32}  {course.instructor:<20}  "
            f"{course.credits:>7}  {course.availability:>5}"
        )


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    config_path = Path(args.config).expanduser().resolve(strict=False) if args.config else None

    try:
        settings = load_settings(config_path)
        state = build_state(settings)
    except (StorageError, ValueError, OSError, yaml.YAMLError) as exc:
        raise SystemExit(f"Unable to start the student portal: {exc}") from exc

    if args.command == "serve":
        _serve(state, host=args.host, port=args.port)
    elif args.command == "init-db":
        print(f"Data directory initialised at {settings.data_dir}.")
    elif args.command == "users":
        _list_users(state)
    elif args.command == "courses":
        _list_courses(state)


if __name__ == "__main__":
    main()
