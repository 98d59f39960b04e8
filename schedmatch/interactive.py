from __future__ import annotations

from typing import Callable, Dict, List, Optional, Set

from rich import box
from rich.console import Console
from rich.table import Table

from schedmatch.confirm import default_selected_sections, partition_courses, toggle_section
from schedmatch.conflicts import clashing_sections, describe_conflict, find_conflicts
from schedmatch.model import CourseDraft

console = Console()


def _component_summary(course: CourseDraft) -> str:
    comp = course.primary_component()
    if comp is None:
        return ""
    days = ", ".join(comp.days)
    times = f"{comp.start_time} - {comp.end_time}" if comp.start_time else ""
    bits = [b for b in (days, times) if b]
    return " • ".join(f"[yellow]{b}[/]" for b in bits)


def _clash_cell(clashes: Dict[str, List[str]], course: CourseDraft) -> str:
    codes = clashes.get(course.section_key)
    return f"[red]{', '.join(codes)}[/]" if codes else ""


def _print_tables(
    section_courses: List[CourseDraft],
    metadata_courses: List[CourseDraft],
    selected: Set[str],
    clashes: Optional[Dict[str, List[str]]] = None,
) -> None:
    clashes = clashes or {}
    if section_courses:
        table = Table(title="Section chats", box=box.SIMPLE)
        table.add_column("#", justify="right")
        table.add_column("Join")
        table.add_column("Course")
        table.add_column("Section")
        table.add_column("Meets")
        table.add_column("Clashes with")
        for i, course in enumerate(section_courses, start=1):
            on = course.section_key in selected
            table.add_row(
                str(i),
                "[green]ON[/]" if on else "[red]off[/]",
                f"[bold cyan]{course.course_code}[/] {course.course_name}".strip(),
                course.section_id,
                _component_summary(course),
                _clash_cell(clashes, course),
            )
        console.print(table)

    if metadata_courses:
        table = Table(title="Saved for later (no chat)", box=box.SIMPLE)
        table.add_column("Course")
        table.add_column("Components")
        table.add_column("Section")
        table.add_column("Clashes with")
        for course in metadata_courses:
            table.add_row(
                f"[bold cyan]{course.course_code}[/]",
                ", ".join(c.type for c in course.components) or "-",
                course.section_id,
                _clash_cell(clashes, course),
            )
        console.print(table)
        console.print("Labs and recitations are saved but do not create chats automatically.")


def confirm_sections(courses: List[CourseDraft], prompt: Optional[Callable[[str], str]] = None) -> Set[str]:
    """
    Show the parsed courses and let the user toggle section chats on/off.
    Returns the selected section keys once the user confirms (blank input).
    """
    ask = prompt or console.input
    section_courses, metadata_courses = partition_courses(courses)
    selected = default_selected_sections(courses)
    clashes = clashing_sections(courses)

    for conflict in find_conflicts(courses):
        (a, _), (b, _) = conflict
        if a.section_key == b.section_key:
            continue
        console.print(f"[red]Time clash[/] {describe_conflict(conflict)}")

    while True:
        _print_tables(section_courses, metadata_courses, selected, clashes)
        if not section_courses:
            return selected

        pick = ask("Toggle a section by number [blank = confirm & continue]: ").strip()
        if not pick:
            return selected
        if not pick.isdigit():
            console.print("Not a number.")
            continue

        i = int(pick)
        if not (1 <= i <= len(section_courses)):
            console.print("Out of range.")
            continue

        selected = toggle_section(selected, section_courses[i - 1].section_key)
