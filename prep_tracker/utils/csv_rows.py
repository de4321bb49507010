"""CSV parsing helpers for goal imports.

Expected columns are ``Category, Topics, Sub-topics, Status`` (any case).
Column names are not validated up front: a row missing a column simply reads
as an empty string.
"""
import csv

from prep_tracker.exceptions import ValidationError
from prep_tracker.models.status import ProgressStatus

CATEGORY = "category"
TOPIC = "topics"
SUBTOPIC = "sub-topics"
STATUS = "status"

COLUMN_ALIASES = {
    CATEGORY: ("category", "categories"),
    TOPIC: ("topics", "topic"),
    SUBTOPIC: ("sub-topics", "sub-topic", "subtopics", "subtopic", "sub topics", "sub topic"),
    STATUS: ("status",),
}

COMPLETED_TOKENS = {"completed", "complete", "done", "finished"}
START_TOKENS = {"start", "started", "in progress", "in_progress", "in-progress", "inprogress", "ongoing"}


def parse_csv_text(text: str) -> list[dict[str, str]]:
    """
    Split CSV text into row dicts keyed by lower-cased header names.

    Double-quoted fields may contain commas. Short rows are padded with
    empty strings and surplus values are dropped.

    Args:
        text: Raw file content

    Returns:
        List of row dicts (one per non-empty data line)

    Raises:
        ValidationError: If there is no header plus at least one data row

    Examples:
        >>> parse_csv_text("Category,Topics\\nMath,Algebra")
        [{'category': 'Math', 'topics': 'Algebra'}]
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        raise ValidationError("CSV must have a header and at least one data row")

    # One record per line: an unbalanced quote must not swallow later rows
    records = [next(csv.reader([line], skipinitialspace=True)) for line in lines]
    headers = [header.strip().lower() for header in records[0]]

    rows = []
    for values in records[1:]:
        rows.append({
            header: values[index].strip() if index < len(values) else ""
            for index, header in enumerate(headers)
        })

    return rows


def normalize_row(row: dict) -> dict[str, str]:
    """Lower-case and trim the keys and values of a client-supplied row."""
    return {
        str(key).strip().lower(): ("" if value is None else str(value).strip())
        for key, value in row.items()
    }


def row_value(row: dict[str, str], column: str) -> str:
    """
    Read a column from a normalized row, accepting common header spellings.

    Examples:
        >>> row_value({"subtopic": "Limits"}, SUBTOPIC)
        'Limits'
        >>> row_value({}, STATUS)
        ''
    """
    for alias in COLUMN_ALIASES.get(column, (column,)):
        value = row.get(alias)
        if value:
            return value
    return ""


def parse_status_token(value: str) -> ProgressStatus:
    """
    Map a free-text CSV status to a progress status.

    Unrecognized or empty values map to pending.

    Examples:
        >>> parse_status_token("Completed").value
        'completed'
        >>> parse_status_token("In Progress").value
        'start'
        >>> parse_status_token("???").value
        'pending'
    """
    token = " ".join((value or "").strip().lower().split())
    if token in COMPLETED_TOKENS:
        return ProgressStatus.COMPLETED
    if token in START_TOKENS:
        return ProgressStatus.START
    return ProgressStatus.PENDING


def is_blank_row(row: dict[str, str]) -> bool:
    """True when the row carries no category, topic or sub-topic."""
    return not (row_value(row, CATEGORY) or row_value(row, TOPIC) or row_value(row, SUBTOPIC))
