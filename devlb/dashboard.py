"""Interactive dashboard showing services and their backends."""

from __future__ import annotations

import queue
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Protocol

from blessed import Terminal

from devlb.render import RowInfo, flatten_entries, render_table
from devlb.styles import ERROR_STYLE, HEADER_STYLE, HELP_STYLE

REFRESH_INTERVAL = 1.0

Cmd = Callable[[], Any]


class _StatusClient(Protocol):
    def status(self) -> Any: ...

    def switch(self, listen_port: int, label: str) -> None: ...


@dataclass(frozen=True)
class TickMsg:
    """Sent when the refresh interval has elapsed."""

    time: datetime


@dataclass(frozen=True)
class StatusMsg:
    """The result of a status fetch: entries, or the error raised."""

    entries: Sequence[Any] = ()
    err: BaseException | None = None


@dataclass(frozen=True)
class SwitchDoneMsg:
    """The result of switching a backend."""

    err: BaseException | None = None


@dataclass(frozen=True)
class KeyMsg:
    """A key press, named like "q", "up", "esc" or "ctrl+c"."""

    key: str


@dataclass(frozen=True)
class WindowSizeMsg:
    """The terminal's current size."""

    width: int
    height: int


class _Quit:
    def __repr__(self) -> str:
        return "QUIT_MSG"


QUIT_MSG = _Quit()


@dataclass(frozen=True)
class _BatchMsg:
    cmds: tuple[Cmd, ...]


def _quit() -> _Quit:
    return QUIT_MSG


def _batch(*cmds: Cmd) -> Cmd:
    return lambda: _BatchMsg(cmds)


def _fetch_status(client: _StatusClient) -> Cmd:
    def cmd() -> StatusMsg:
        try:
            response = client.status()
        except Exception as exc:  # any client failure is shown to the user
            return StatusMsg(err=exc)
        return StatusMsg(entries=list(response.entries))

    return cmd


def _switch_backend(client: _StatusClient, listen_port: int, label: str) -> Cmd:
    def cmd() -> SwitchDoneMsg:
        try:
            client.switch(listen_port, label)
        except Exception as exc:  # any client failure is shown to the user
            return SwitchDoneMsg(err=exc)
        return SwitchDoneMsg()

    return cmd


def _tick() -> TickMsg:
    time.sleep(REFRESH_INTERVAL)
    return TickMsg(datetime.now())


@dataclass
class Model:
    """Dashboard state. update() returns a new model and leaves this one as it was."""

    client: _StatusClient
    entries: list[Any] = field(default_factory=list)
    rows: list[RowInfo] = field(default_factory=list)
    cursor: int = 0
    err: BaseException | None = None
    width: int = 0
    height: int = 0

    def init(self) -> Cmd:
        """Return the command that starts fetching status and the refresh timer."""
        return _batch(_fetch_status(self.client), _tick)

    def update(self, msg: Any) -> tuple[Model, Cmd | None]:
        """Apply a message; return the new model and the next command, if any."""
        if isinstance(msg, KeyMsg):
            return self._handle_key(msg)
        if isinstance(msg, WindowSizeMsg):
            return replace(self, width=msg.width, height=msg.height), None
        if isinstance(msg, TickMsg):
            return self, _fetch_status(self.client)
        if isinstance(msg, StatusMsg):
            if msg.err is not None:
                return replace(self, err=msg.err), _tick
            rows = flatten_entries(msg.entries)
            cursor = self.cursor
            if cursor >= len(rows):
                cursor = max(0, len(rows) - 1)
            return (
                replace(self, err=None, entries=list(msg.entries), rows=rows, cursor=cursor),
                _tick,
            )
        if isinstance(msg, SwitchDoneMsg):
            model = replace(self, err=msg.err) if msg.err is not None else self
            return model, _fetch_status(self.client)
        return self, None

    def view(self) -> str:
        """Render the whole dashboard screen."""
        parts = [
            HEADER_STYLE.render(" devlb dashboard ")
            + HELP_STYLE.render(f"  auto-refresh: {REFRESH_INTERVAL:g}s")
            + "\n\n"
        ]
        if self.err is not None:
            parts.append(ERROR_STYLE.render(f"  Error: {self.err}") + "\n\n")
        parts.append(render_table(self.entries, self.cursor, self.width or 80))
        parts.append("\n\n")
        parts.append(HELP_STYLE.render("  ↑↓ select  s switch  r refresh  q quit"))
        return "".join(parts)

    def _handle_key(self, msg: KeyMsg) -> tuple[Model, Cmd | None]:
        key = msg.key
        if key in ("q", "esc", "ctrl+c"):
            return self, _quit
        if key in ("up", "k"):
            if self.cursor > 0:
                return replace(self, cursor=self.cursor - 1), None
            return self, None
        if key in ("down", "j"):
            if self.cursor < len(self.rows) - 1:
                return replace(self, cursor=self.cursor + 1), None
            return self, None
        if key == "s":
            if 0 <= self.cursor < len(self.rows):
                row = self.rows[self.cursor]
                if not row.is_idle and row.backend.label:
                    return self, _switch_backend(self.client, row.listen_port, row.backend.label)
            return self, None
        if key == "r":
            return self, _fetch_status(self.client)
        return self, None


_SEQUENCE_KEYS = {
    "KEY_UP": "up",
    "KEY_DOWN": "down",
    "KEY_ESCAPE": "esc",
    "KEY_ENTER": "enter",
}


def _key_name(keystroke: Any) -> str:
    if keystroke.is_sequence:
        return _SEQUENCE_KEYS.get(keystroke.name, keystroke.name or "")
    text = str(keystroke)
    if text == "\x03":
        return "ctrl+c"
    return text


def run(client: _StatusClient) -> Model:
    """Run the dashboard in the terminal until the user quits; return the final model."""
    term = Terminal()
    events: queue.Queue[Any] = queue.Queue()

    def dispatch(cmd: Cmd | None) -> None:
        if cmd is None:
            return

        def worker() -> None:
            msg = cmd()
            if msg is not None:
                events.put(msg)

        threading.Thread(target=worker, daemon=True).start()

    model = Model(client)
    dispatch(model.init())
    size: tuple[int, int] | None = None
    shown: str | None = None

    with term.fullscreen(), term.cbreak(), term.hidden_cursor():
        try:
            while True:
                current = (term.width, term.height)
                if current != size:
                    size = current
                    events.put(WindowSizeMsg(*current))

                screen = model.view()
                if screen != shown:
                    print(term.home + term.clear + screen, end="", flush=True)
                    shown = screen

                keystroke = term.inkey(timeout=0.05)
                if keystroke:
                    events.put(KeyMsg(_key_name(keystroke)))

                while True:
                    try:
                        msg = events.get_nowait()
                    except queue.Empty:
                        break
                    if msg is QUIT_MSG:
                        return model
                    if isinstance(msg, _BatchMsg):
                        for cmd in msg.cmds:
                            dispatch(cmd)
                        continue
                    model, cmd = model.update(msg)
                    dispatch(cmd)
        except KeyboardInterrupt:
            pass
    return model