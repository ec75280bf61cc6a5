"""
CLI (Command Line Interface).

Terminal commands around the local course cache and the backend, e.g.:

    myplanner sync
    myplanner courses
    myplanner check "Linear Algebra" --slot mon 09:00 10:30 --self-id 42
    myplanner import ocr_preview.json --include 2 --confirm
    myplanner status assignment 17 completed
    myplanner export timetable.ics --term-start 2026-09-14

Every write to the backend goes through the MutationCoordinator.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.table import Table
from rich import box

from myplanner.config import get_config
from myplanner.conflicts import find_internal_overlaps, partition, scan
from myplanner.days import day_label, parse_day
from myplanner.errors import DUPLICATE_INVOCATION, OperationError, PlannerError
from myplanner.export_ics import export_courses_to_ics
from myplanner.logging import setup_logging
from myplanner.model import (
    ConflictRecord,
    TODO_KINDS,
    TodoItem,
    WeeklySlot,
    normalize_time,
    parse_ocr_payload,
    to_scheduled_entity,
)
from myplanner.mutation import MutationCoordinator
from myplanner.notices import Notice, NoticeChannel
from myplanner.remote import PlannerApi
from myplanner.status import StatusUpdater
from myplanner.storage import load_courses, save_courses

console = Console()


def _fmt_slot(slot: WeeklySlot) -> str:
    return f"{day_label(slot.day_of_week)} {slot.start_time}-{slot.end_time}"


def _fmt_conflict(c: ConflictRecord) -> str:
    return f"{_fmt_slot(c.slot)} conflicts with '{c.conflicting_entity_label}' {_fmt_slot(c.conflicting_slot)}"


def _print_notice(notice: Notice) -> None:
    prefix = "OK" if notice.kind == "success" else "Error"
    print(f"{prefix}: {notice.message}")


def _coordinator() -> MutationCoordinator:
    notices = NoticeChannel()
    notices.subscribe(_print_notice)
    return MutationCoordinator(notices=notices)


def _cmd_sync(args: argparse.Namespace, api: PlannerApi) -> int:
    """
    Download courses from the backend into the local cache.
    """
    try:
        courses = api.list_courses()
    except OperationError as exc:
        print(f"Sync failed: {exc}")
        return 1
    save_courses(courses)
    print(f"Synced {len(courses)} courses.")
    return 0


def _cmd_courses(args: argparse.Namespace) -> int:
    """
    List cached courses with their weekly slots.
    """
    courses = load_courses()
    if not courses:
        print("No courses cached. Run 'myplanner sync' first.")
        return 0
    for c in courses:
        slots = ", ".join(_fmt_slot(s) for s in c.schedule) or "(no slots)"
        print(f"{c.id} | {c.name} | {slots}")
    return 0


def _cmd_check(args: argparse.Namespace) -> int:
    """
    Check a manual schedule edit against the cached courses.
    Returns 1 if there are conflicts.
    """
    if not args.slot:
        print("Please provide at least one --slot DAY START END.")
        return 2

    slots = [
        WeeklySlot(day_of_week=parse_day(day), start_time=normalize_time(start), end_time=normalize_time(end))
        for day, start, end in args.slot
    ]

    internal = find_internal_overlaps(slots)
    for i, j in internal:
        print(f"Slots overlap each other: {_fmt_slot(slots[i])} / {_fmt_slot(slots[j])}")

    existing = [to_scheduled_entity(c) for c in load_courses()]
    conflicts = scan(slots, existing, self_id=args.self_id)
    if not conflicts and not internal:
        print(f"No conflicts for '{args.name}'.")
        return 0

    if conflicts:
        print(f"Conflicts found: {len(conflicts)}")
        for c in conflicts:
            print(f"- {_fmt_conflict(c)}")
    return 1


def _load_ocr_file(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise PlannerError(f"cannot read OCR file {path}: {exc}") from exc


def _cmd_import(args: argparse.Namespace, api: Optional[PlannerApi]) -> int:
    """
    Preview an OCR batch; with --confirm submit the clean items plus --include ones.
    """
    candidates = parse_ocr_payload(_load_ocr_file(Path(args.file)))
    if not candidates:
        print("No courses recognized.")
        return 1

    existing = [to_scheduled_entity(c) for c in load_courses()]
    result = partition([to_scheduled_entity(c) for c in candidates], existing)

    table = Table(title="Recognized courses", box=box.SIMPLE)
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("Slots")
    table.add_column("Conflicts")
    for i, item in enumerate(result.items):
        slots = ", ".join(_fmt_slot(s) for s in item.slots)
        conflicts = "\n".join(_fmt_conflict(c) for c in item.conflicts) or "-"
        table.add_row(str(i), item.label, slots, conflicts)
    console.print(table)
    print(f"{result.total} courses, {result.with_conflicts} with conflicts.")

    selection = result.confirm(args.include or [])
    print(f"Selected {len(selection)} of {result.total} courses.")
    if not args.confirm:
        return 0
    if not selection:
        print("Nothing to import.")
        return 0

    coordinator = _coordinator()
    chosen = [item.source for item in selection]

    async def submit() -> Any:
        return await api.confirm_timetable_import(chosen)

    options = replace(
        coordinator.defaults,
        success_message=f"Imported {len(chosen)} courses",
        error_message="Timetable import failed",
    )
    asyncio.run(coordinator.mutate("timetable-import", submit, options))
    return 0


def _cmd_status(args: argparse.Namespace, api: PlannerApi) -> int:
    """
    Set the status of an assignment / exam / custom to-do in the backend.
    """
    coordinator = _coordinator()
    items = {args.item_id: TodoItem(id=args.item_id, title=args.title or "", kind=args.kind)}
    updater = StatusUpdater(coordinator, items, api.status_sender(args.kind), kind=args.kind)

    result = asyncio.run(updater.update_status(args.item_id, args.status, args.title))
    if result is DUPLICATE_INVOCATION:
        return 0
    print(f"{args.kind} {args.item_id}: {items[args.item_id].status}")
    return 0


def _cmd_export(args: argparse.Namespace) -> int:
    """
    Export cached courses as weekly recurring events.
    """
    courses = load_courses()
    if not courses:
        print("No courses to export.")
        return 0

    out_path = (args.out or "").strip()
    if not out_path:
        print("Please provide output .ics path.")
        return 1
    if args.weeks < 1:
        print("--weeks must be at least 1.")
        return 1

    try:
        term_start = date.fromisoformat(args.term_start) if args.term_start else date.today()
    except ValueError:
        print(f"Invalid --term-start: {args.term_start!r} (expected YYYY-MM-DD)")
        return 1

    n = export_courses_to_ics(courses, out_path, term_start=term_start, weeks=args.weeks)
    print(f"Exported {n} weekly events to: {out_path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="myplanner", description="MyPlanner CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("sync", help="Download courses from the backend")
    sub.add_parser("courses", help="List cached courses")

    p_check = sub.add_parser("check", help="Check a schedule for conflicts")
    p_check.add_argument("name", type=str, help="Course name")
    p_check.add_argument(
        "--slot",
        nargs=3,
        action="append",
        metavar=("DAY", "START", "END"),
        help="Weekly slot, e.g. --slot mon 09:00 10:30 (repeatable)",
    )
    p_check.add_argument("--self-id", default=None, help="Id of the course being edited")

    p_import = sub.add_parser("import", help="Preview / confirm an OCR timetable import")
    p_import.add_argument("file", type=str, help="OCR preview JSON file")
    p_import.add_argument(
        "--include", type=int, nargs="+", default=[], help="Positions of conflicting courses to import anyway"
    )
    p_import.add_argument("--confirm", action="store_true", help="Submit the selection to the backend")

    p_status = sub.add_parser("status", help="Set assignment / exam / to-do status")
    p_status.add_argument("kind", choices=TODO_KINDS)
    p_status.add_argument("item_id", type=str)
    p_status.add_argument("status", choices=("pending", "completed", "overdue"))
    p_status.add_argument("--title", default=None)

    p_export = sub.add_parser("export", help="Export cached courses to .ics")
    p_export.add_argument("out", type=str, help="Output file path (e.g. out.ics)")
    p_export.add_argument("--term-start", default=None, help="First day of term (YYYY-MM-DD)")
    p_export.add_argument("--weeks", type=int, default=16, help="Number of weeks")

    return parser


def _dispatch(args: argparse.Namespace) -> int:
    if args.command == "courses":
        return _cmd_courses(args)
    if args.command == "check":
        return _cmd_check(args)
    if args.command == "export":
        return _cmd_export(args)
    if args.command == "import" and not args.confirm:
        return _cmd_import(args, None)

    api = PlannerApi.from_config()
    if args.command == "sync":
        return _cmd_sync(args, api)
    if args.command == "import":
        return _cmd_import(args, api)
    if args.command == "status":
        return _cmd_status(args, api)
    return 2


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    cfg = get_config()
    setup_logging(json_output=cfg.log_json, log_level=cfg.log_level)

    try:
        code = _dispatch(args)
    except OperationError:
        # already reported through the notice channel
        code = 1
    except PlannerError as exc:
        print(f"Error: {exc}")
        code = 2

    raise SystemExit(code)
