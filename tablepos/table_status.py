"""Table status values, transitions and the numeric code mapping."""

from __future__ import annotations

from dataclasses import replace

from tablepos.constant import TABLE_STATUS_CODES, TABLE_STATUS_LABELS
from tablepos.models import Table, TableStatus

ALL_STATUSES: tuple[TableStatus, ...] = tuple(TableStatus)

_STATUS_BY_CODE: dict[int, TableStatus] = {code: TableStatus(value) for value, code in TABLE_STATUS_CODES.items()}


def coerce_status(status: TableStatus | str) -> TableStatus:
    """Accept an enum member or its string value."""
    if isinstance(status, TableStatus):
        return status
    try:
        return TableStatus(str(status).lower())
    except ValueError:
        raise ValueError(f"Unknown table status: {status!r}") from None


def request_transition(table: Table, new_status: TableStatus | str) -> Table:
    """
    Return a copy of ``table`` in ``new_status``.

    Every status may follow every other one. Whether a change is appropriate
    depends on the order in progress, which is checked by the session.
    """
    return replace(table, status=coerce_status(new_status))


def status_from_code(code: object) -> TableStatus:
    """Map a backend numeric code; unknown or missing codes read as available."""
    if isinstance(code, bool):
        return TableStatus.AVAILABLE
    try:
        return _STATUS_BY_CODE.get(int(code), TableStatus.AVAILABLE)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return TableStatus.AVAILABLE


def status_to_code(status: TableStatus | str) -> int:
    return TABLE_STATUS_CODES[coerce_status(status).value]


def status_label(status: TableStatus | str) -> str:
    return TABLE_STATUS_LABELS[coerce_status(status).value]
