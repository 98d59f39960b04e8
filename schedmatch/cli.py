"""
CLI (Command Line Interface).

    schedmatch parse <file|image|url>
    schedmatch fetch <url> <out>
    schedmatch conflicts <file|image|url>
    schedmatch export <file|image|url> <out.ics>
    schedmatch save <file|image|url> [--semester ...] [--yes]
    schedmatch add <code> [--name ...] [--days MWF] [--start 9:00AM] [--end ...]
    schedmatch classmates [--class-id ID [--professor NAME]]
    schedmatch leave <enrollment_id>

Sources ending in .ics / .csv are parsed as files, image files go through
OCR, http(s):// and webcal:// links are downloaded first.

Note:
- The section toggle UI lives in schedmatch/interactive.py
- Output here is plain text; backend commands need Supabase settings
  and a signed-in user (see schedmatch/config.py)
"""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from datetime import date
from pathlib import Path

import requests
from postgrest.exceptions import APIError
from rich.logging import RichHandler

from schedmatch.cache import QueryCache
from schedmatch.confirm import default_selected_sections, describe_course
from schedmatch.conflicts import clashing_sections, describe_conflict, find_conflicts
from schedmatch.errors import ScheduleError
from schedmatch.export_ics import export_courses_to_ics
from schedmatch.model import COMPONENT_TYPES, LECTURE, ParsedSchedule
from schedmatch.parse import build_manual_course, load_schedule_file

logger = logging.getLogger("schedmatch")

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".tif", ".tiff", ".webp"}


def _load_source(source: str) -> ParsedSchedule:
    """
    Turn a file path, image path or URL into a parsed schedule.
    """
    lower = source.strip().lower()
    if lower.startswith(("http://", "https://", "webcal://")):
        from schedmatch.fetch import fetch_schedule

        return fetch_schedule(source)

    if Path(lower).suffix in IMAGE_SUFFIXES:
        from schedmatch.structure import schedule_from_image

        return schedule_from_image(source)

    return load_schedule_file(source)


def _backend():
    """
    Create an authenticated client and the three backend services sharing
    one query cache.
    """
    from schedmatch.db.supabase_client import SupabaseInitializer, sign_in
    from schedmatch.matching import ClassMatcher, ClassmateFinder, EnrollmentWriter

    supabase = SupabaseInitializer().supabase
    user_id = sign_in(supabase)
    cache = QueryCache()
    return (
        ClassMatcher(supabase, user_id, cache),
        EnrollmentWriter(supabase, user_id, cache),
        ClassmateFinder(supabase, user_id, cache),
    )


def _cmd_parse(args: argparse.Namespace) -> int:
    """
    Print the courses found in a source.
    """
    parsed = _load_source(args.source)

    if args.json:
        print(json.dumps([asdict(c) for c in parsed.courses], indent=2, ensure_ascii=False))
        return 0

    clashes = clashing_sections(parsed.courses)
    print(f"Courses found: {len(parsed.courses)}")
    for course in parsed.courses:
        flag = "" if course.is_chat_eligible else " (saved for later)"
        if course.section_key in clashes:
            flag += f" (clashes with {', '.join(clashes[course.section_key])})"
        print(f"- {describe_course(course)}{flag}")
    return 0


def _cmd_fetch(args: argparse.Namespace) -> int:
    """
    Download a calendar subscription / export to a local file.
    """
    from schedmatch.fetch import fetch_calendar

    text = fetch_calendar(args.url, out_path=args.out)
    print(f"Saved {len(text)} characters to: {args.out}")
    return 0


def _cmd_conflicts(args: argparse.Namespace) -> int:
    parsed = _load_source(args.source)

    confs = find_conflicts(parsed.courses)
    if not confs:
        print("No conflicts found.")
        return 0

    print(f"Conflicts found: {len(confs)}")
    for conflict in confs:
        print(f"- {describe_conflict(conflict)}")
    return 0


def _cmd_export(args: argparse.Namespace) -> int:
    parsed = _load_source(args.source)

    week_of = None
    if args.week_of:
        try:
            week_of = date.fromisoformat(args.week_of)
        except ValueError:
            print(f"Invalid --week-of date: {args.week_of!r} (expected YYYY-MM-DD)")
            return 1

    n = export_courses_to_ics(parsed.courses, args.out, week_of=week_of, weeks=args.weeks)
    print(f"Exported {n} events to: {args.out}")
    return 0


def _cmd_save(args: argparse.Namespace) -> int:
    """
    Confirm sections, then match, enroll and join chats.
    """
    from schedmatch.save import save_schedule

    parsed = _load_source(args.source)

    if args.yes:
        selected = default_selected_sections(parsed.courses)
    else:
        from schedmatch.interactive import confirm_sections

        selected = confirm_sections(parsed.courses)

    matcher, enroller, _ = _backend()
    summaries = save_schedule(
        parsed.courses,
        selected,
        matcher,
        enroller,
        semester=args.semester,
        term_code=args.term_code,
    )
    _print_summaries(summaries)
    return 0


def _cmd_add(args: argparse.Namespace) -> int:
    """
    Save one class typed in on the command line.
    """
    from schedmatch.save import save_schedule

    course = build_manual_course(
        args.code,
        course_name=args.name,
        professor=args.professor,
        days=args.days,
        start=args.start,
        end=args.end,
        location=args.location,
        component_type=args.type,
        section_id=args.section,
        semester=args.semester or "",
    )
    selected = set() if args.no_chat else default_selected_sections([course])

    matcher, enroller, _ = _backend()
    summaries = save_schedule([course], selected, matcher, enroller, semester=args.semester, term_code=args.term_code)
    _print_summaries(summaries)
    return 0


def _print_summaries(summaries) -> None:
    print(f"Saved {len(summaries)} course(s).")
    for s in summaries:
        chat = " | joined chat" if s.joined_chat else ""
        print(f"- {s.course_code} ({s.section_id}) -> class {s.class_id}, enrollment {s.enrollment_id}{chat}")


def _cmd_classmates(args: argparse.Namespace) -> int:
    _, _, finder = _backend()

    if args.class_id:
        classmates = finder.find_classmates(args.class_id, args.professor)
    else:
        classmates = finder.find_all_classmates()

    if not classmates:
        print("No classmates found yet.")
        return 0

    for mate in classmates:
        profile = mate.profile or {}
        name = profile.get("full_name") or profile.get("username") or str(mate.user_id)
        shared = ", ".join(
            f"{c.class_code or c.class_id}" + (f" ({c.professor})" if c.professor else "") for c in mate.shared_classes
        )
        print(f"- {name} | {shared}")
    return 0


def _cmd_leave(args: argparse.Namespace) -> int:
    _, enroller, _ = _backend()
    row = enroller.set_active(args.enrollment_id, False)
    if not row:
        print(f"Enrollment not found: {args.enrollment_id}")
        return 1
    print(f"Left class {row.get('class_id')} ({row.get('semester')})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="schedmatch", description="Import a class schedule and find classmates")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_parse = sub.add_parser("parse", help="Show the courses found in a file, photo or URL")
    p_parse.add_argument("source", type=str, help="Path to .ics/.csv/image, or calendar URL")
    p_parse.add_argument("--json", action="store_true", help="Print courses as JSON")

    p_fetch = sub.add_parser("fetch", help="Download a calendar URL to a file")
    p_fetch.add_argument("url", type=str, help="https:// or webcal:// link")
    p_fetch.add_argument("out", type=str, help="Output file path (e.g. schedule.ics)")

    p_conf = sub.add_parser("conflicts", help="Show overlapping meetings")
    p_conf.add_argument("source", type=str)

    p_export = sub.add_parser("export", help="Export courses as weekly events to .ics")
    p_export.add_argument("source", type=str)
    p_export.add_argument("out", type=str, help="Output file path (e.g. out.ics)")
    p_export.add_argument("--week-of", type=str, default=None, help="First week, YYYY-MM-DD (default: this week)")
    p_export.add_argument("--weeks", type=int, default=None, help="Number of weeks to repeat")

    p_save = sub.add_parser("save", help="Confirm sections and save the schedule to your profile")
    p_save.add_argument("source", type=str)
    p_save.add_argument("--semester", type=str, default=None, help="e.g. 'Fall 2026' (default: current)")
    p_save.add_argument("--term-code", type=str, default=None, help="e.g. 2026FA (default: current)")
    p_save.add_argument("--yes", "-y", action="store_true", help="Skip the confirmation step")

    p_add = sub.add_parser("add", help="Enter one class by hand and save it")
    p_add.add_argument("code", type=str, help="Class code, e.g. 'CS 201'")
    p_add.add_argument("--name", type=str, default="", help="Class name")
    p_add.add_argument("--professor", type=str, default="")
    p_add.add_argument("--section", type=str, default="0001")
    p_add.add_argument("--days", type=str, default="", help="e.g. MWF, TR, 'Mon Wed'")
    p_add.add_argument("--start", type=str, default="", help="e.g. '9:00 AM' or 14:30")
    p_add.add_argument("--end", type=str, default="")
    p_add.add_argument("--location", type=str, default="")
    p_add.add_argument("--type", type=str, default=LECTURE, choices=COMPONENT_TYPES)
    p_add.add_argument("--semester", type=str, default=None, help="e.g. 'Fall 2026' (default: current)")
    p_add.add_argument("--term-code", type=str, default=None, help="e.g. 2026FA (default: current)")
    p_add.add_argument("--no-chat", action="store_true", help="Save without joining the section chat")

    p_mates = sub.add_parser("classmates", help="List classmates")
    p_mates.add_argument("--class-id", type=str, default=None, help="Only this class")
    p_mates.add_argument("--professor", type=str, default=None, help="Only this professor's section")

    p_leave = sub.add_parser("leave", help="Deactivate an enrollment")
    p_leave.add_argument("enrollment_id", type=str)

    return parser


COMMANDS = {
    "parse": _cmd_parse,
    "fetch": _cmd_fetch,
    "conflicts": _cmd_conflicts,
    "export": _cmd_export,
    "save": _cmd_save,
    "add": _cmd_add,
    "classmates": _cmd_classmates,
    "leave": _cmd_leave,
}


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
    )

    handler = COMMANDS.get(args.command)
    if handler is None:
        raise SystemExit(2)

    try:
        raise SystemExit(handler(args))
    except ScheduleError as e:
        print(f"Error: {e}")
        if e.hint:
            print(e.hint)
        raise SystemExit(1)
    except FileNotFoundError as e:
        print(f"File not found: {e.filename}")
        raise SystemExit(1)
    except requests.RequestException as e:
        print(f"Download failed: {e}")
        raise SystemExit(1)
    except APIError as e:
        logger.error(f"Backend error: {e}")
        print("Something went wrong while talking to the server. Please try again.")
        raise SystemExit(1)
