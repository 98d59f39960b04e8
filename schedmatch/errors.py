"""
Error types raised by the import pipeline.

Backend failures are not wrapped: postgrest's APIError reaches the caller
unchanged. Everything here is either a missing precondition or input we
cannot use, and carries a hint the CLI shows to the user.
"""

from __future__ import annotations


ALTERNATIVES_HINT = (
    "Try one of these instead:\n"
    "  - import an iCal (.ics) file\n"
    "  - import a CSV file\n"
    "  - enter your classes manually (schedmatch add CODE --days ... --start ...)"
)


class ScheduleError(Exception):
    hint = ""

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        if hint is not None:
            self.hint = hint


class AuthenticationRequiredError(ScheduleError):
    hint = "Sign in first (set SCHEDMATCH_ACCESS_TOKEN or SCHEDMATCH_EMAIL / SCHEDMATCH_PASSWORD)."


class UniversityNotFoundError(ScheduleError):
    hint = "Finish the university step of your profile before importing classes."


class UnsupportedFormatError(ScheduleError):
    hint = "Please use an iCal (.ics) or CSV file."


class OcrUnavailableError(ScheduleError):
    hint = "Schedule photo import is not available on this machine.\n" + ALTERNATIVES_HINT


class NoCoursesFoundError(ScheduleError):
    hint = "Check the format, use a clearer image, or enter your schedule manually.\n" + ALTERNATIVES_HINT


class InvalidEntryError(ScheduleError):
    hint = "Days look like 'MWF', 'TR' or 'Mon Wed'; times like '9:00 AM' or '14:30'."
