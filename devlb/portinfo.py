"""Finding the process that listens on a local TCP port."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

_PROC = Path("/proc")
_LISTEN_STATE = "0A"


@dataclass
class PortOwner:
    """The process that holds a port."""

    pid: int
    command: str


def find_port_owner(port: int) -> PortOwner | None:
    """Return the process listening on port, or None if it cannot be found.

    Reads the kernel's TCP tables under /proc; where they do not exist the
    answer is always None.
    """
    for table in ("tcp", "tcp6"):
        owner = _find_in_file(_PROC / "net" / table, port, _PROC)
        if owner is not None:
            return owner
    return None


def _find_in_file(path: Path, port: int, proc_root: Path) -> PortOwner | None:
    try:
        table = path.read_text()
    except OSError:
        return None
    inode = _listening_inode(table, port)
    if inode is None:
        return None
    pid = _find_pid_by_inode(inode, proc_root)
    if pid is None:
        return None
    return PortOwner(pid=pid, command=_read_comm(pid, proc_root))


def _listening_inode(table: str, port: int) -> str | None:
    """Return the socket inode of the first listening row for port in a TCP table."""
    for line in table.split("\n")[1:]:
        fields = line.split()
        if len(fields) < 10:
            continue
        parts = fields[1].split(":")
        if len(parts) != 2:
            continue
        try:
            row_port = int(parts[1], 16)
        except ValueError:
            continue
        if row_port > 0xFFFF or row_port != port:
            continue
        if fields[3] != _LISTEN_STATE:
            continue
        if fields[9] == "0":
            continue
        return fields[9]
    return None


def _find_pid_by_inode(inode: str, proc_root: Path) -> int | None:
    target = f"socket:[{inode}]"
    try:
        entries = sorted(proc_root.iterdir())
    except OSError:
        return None
    for entry in entries:
        if not entry.name.isdigit():
            continue
        try:
            if not entry.is_dir():
                continue
            fds = sorted((entry / "fd").iterdir())
        except OSError:
            continue
        for fd in fds:
            try:
                link = os.readlink(fd)
            except OSError:
                continue
            if link == target:
                return int(entry.name)
    return None


def _read_comm(pid: int, proc_root: Path) -> str:
    try:
        return (proc_root / str(pid) / "comm").read_text().strip()
    except OSError:
        return ""