"""Terminal text styles and the styles used by the dashboard."""

from __future__ import annotations

import re
from dataclasses import dataclass

_RESET = "\x1b[0m"
_ANSI = re.compile(r"\x1b\[[0-9;]*m")


def _visible_len(text: str) -> int:
    return len(_ANSI.sub("", text))


@dataclass(frozen=True)
class Style:
    """A text style rendered with ANSI escape sequences.

    Colours are indices into the 256-colour palette, given as strings.
    Padding is (vertical, horizontal), in lines and columns.
    """

    bold: bool = False
    underline: bool = False
    foreground: str | None = None
    background: str | None = None
    padding: tuple[int, int] = (0, 0)

    def _codes(self) -> list[str]:
        codes = []
        if self.bold:
            codes.append("1")
        if self.underline:
            codes.append("4")
        if self.foreground is not None:
            codes.append(f"38;5;{self.foreground}")
        if self.background is not None:
            codes.append(f"48;5;{self.background}")
        return codes

    def render(self, text: str) -> str:
        """Return text with this style applied to each of its lines."""
        lines = text.split("\n")
        vertical, horizontal = self.padding
        if vertical or horizontal:
            width = max(_visible_len(line) for line in lines)
            side = " " * horizontal
            lines = [
                side + line + " " * (width - _visible_len(line)) + side for line in lines
            ]
            blank = " " * (width + 2 * horizontal)
            lines = [blank] * vertical + lines + [blank] * vertical

        codes = self._codes()
        if not codes:
            return "\n".join(lines)
        prefix = f"\x1b[{';'.join(codes)}m"
        return "\n".join(f"{prefix}{line}{_RESET}" for line in lines)


HEADER_STYLE = Style(bold=True, foreground="15", background="57", padding=(0, 1))
COLUMN_HEADER_STYLE = Style(bold=True, foreground="252", underline=True)
ACTIVE_STYLE = Style(foreground="82")
STANDBY_STYLE = Style(foreground="245")
UNHEALTHY_STYLE = Style(foreground="196")
IDLE_STYLE = Style(foreground="240")
SELECTED_STYLE = Style(background="236", bold=True)
HELP_STYLE = Style(foreground="241")
ERROR_STYLE = Style(foreground="196", bold=True)

ACTIVE_INDICATOR = Style(foreground="82").render("●")
STANDBY_INDICATOR = Style(foreground="245").render("○")
UNHEALTHY_INDICATOR = Style(foreground="196").render("✗")
IDLE_INDICATOR = Style(foreground="240").render("○")