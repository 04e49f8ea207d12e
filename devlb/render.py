"""Rendering of the dashboard's status table."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from devlb.styles import (
    ACTIVE_INDICATOR,
    ACTIVE_STYLE,
    COLUMN_HEADER_STYLE,
    IDLE_INDICATOR,
    IDLE_STYLE,
    SELECTED_STYLE,
    STANDBY_INDICATOR,
    STANDBY_STYLE,
    UNHEALTHY_INDICATOR,
    UNHEALTHY_STYLE,
)

_ANSI = re.compile(r"\x1b\[[0-9;]*m")
_NO_SERVICES = "No services configured"


class _Backend(Protocol):
    port: int
    label: str
    active: bool
    healthy: bool | None
    active_conns: int
    bytes_in: int
    bytes_out: int


class _Entry(Protocol):
    service: str
    listen_port: int
    backends: Sequence[Any]


@dataclass
class RowInfo:
    """One selectable row of the table: a backend, or an idle service."""

    listen_port: int
    service: str
    backend: Any = None
    is_idle: bool = False


def flatten_entries(entries: Iterable[_Entry]) -> list[RowInfo]:
    """Turn status entries into rows: one per backend, or one idle row per service."""
    rows = []
    for entry in entries:
        if not entry.backends:
            rows.append(RowInfo(entry.listen_port, entry.service, is_idle=True))
            continue
        rows.extend(
            RowInfo(entry.listen_port, entry.service, backend=backend)
            for backend in entry.backends
        )
    return rows


def format_bytes(b: int) -> str:
    """Format a byte count in human-readable form."""
    if b >= 1 << 30:
        return f"{b / (1 << 30):.1f}G"
    if b >= 1 << 20:
        return f"{b / (1 << 20):.1f}M"
    if b >= 1 << 10:
        return f"{b / (1 << 10):.1f}K"
    return f"{b}B"


def _ljust(text: str, width: int) -> str:
    return text + " " * max(0, width - len(_ANSI.sub("", text)))


def _rjust(text: str, width: int) -> str:
    return " " * max(0, width - len(_ANSI.sub("", text))) + text


def _format_row(
    prefix: str,
    port: str,
    backend: str,
    label: str,
    status: str,
    conns: str,
    bytes_in: str,
    bytes_out: str,
) -> str:
    return prefix + " ".join(
        (
            _ljust(port, 7),
            _ljust(backend, 9),
            _ljust(label, 14),
            _ljust(status, 14),
            _rjust(conns, 5),
            _rjust(bytes_in, 8),
            _rjust(bytes_out, 8),
        )
    )


def _unhealthy(backend: _Backend) -> bool:
    return getattr(backend, "healthy", None) is False


def _backend_status(backend: _Backend) -> str:
    if _unhealthy(backend):
        return UNHEALTHY_INDICATOR + " unhealthy"
    if backend.active:
        return ACTIVE_INDICATOR + " active"
    return STANDBY_INDICATOR + " standby"


def _style_row(backend: _Backend, line: str) -> str:
    if _unhealthy(backend):
        return UNHEALTHY_STYLE.render(line)
    if backend.active:
        return ACTIVE_STYLE.render(line)
    return STANDBY_STYLE.render(line)


def render_table(entries: Sequence[_Entry] | None, cursor: int, width: int) -> str:
    """Render the status table, marking the row at cursor as selected.

    width is the terminal width; the table layout is fixed and does not use it.
    """
    if not entries:
        return IDLE_STYLE.render(_NO_SERVICES)
    rows = flatten_entries(entries)
    if not rows:
        return IDLE_STYLE.render(_NO_SERVICES)

    header = _format_row("  ", "PORT", "BACKEND", "LABEL", "STATUS", "CONNS", "  IN", " OUT")
    lines = [COLUMN_HEADER_STYLE.render(header)]

    last_port = 0
    for index, row in enumerate(rows):
        prefix = "> " if index == cursor else "  "
        if row.is_idle:
            line = _format_row(
                prefix, f":{row.listen_port}", "-", "-", IDLE_INDICATOR + " idle", "-", "-", "-"
            )
            line = IDLE_STYLE.render(line)
        else:
            backend = row.backend
            port_text = f":{row.listen_port}" if row.listen_port != last_port else ""
            line = _format_row(
                prefix,
                port_text,
                f":{backend.port}",
                backend.label or "-",
                _backend_status(backend),
                str(backend.active_conns),
                format_bytes(backend.bytes_in),
                format_bytes(backend.bytes_out),
            )
            line = _style_row(backend, line)

        if index == cursor:
            line = SELECTED_STYLE.render(line)
        lines.append(line)
        last_port = row.listen_port

    return "\n".join(lines)