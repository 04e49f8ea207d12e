"""Labels that identify the working context a backend runs from."""

from __future__ import annotations

import random
import socket
import subprocess

_ADJECTIVES = (
    "bold", "calm", "cool", "dark", "fast",
    "gold", "keen", "lean", "neat", "pale",
    "pure", "rare", "safe", "slim", "soft",
    "tall", "warm", "wide", "wise", "wild",
)

_NOUNS = (
    "ant", "bat", "cat", "cow", "dog",
    "elk", "fox", "fly", "jay", "owl",
    "ram", "ray", "bee", "eel", "yak",
    "ape", "cod", "hen", "hog", "kit",
)


def _git(*args: str) -> str | None:
    """Run git with the given arguments and return its trimmed output, or None on failure."""
    try:
        completed = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError):
        return None
    return completed.stdout.strip()


def detect_label(explicit: str = "") -> str:
    """Return a label for the current working context.

    An explicit label wins. Otherwise the current git branch is used, or the
    short commit hash when HEAD is detached. Outside a git repository the
    hostname is used, and "unknown" when even that is unavailable.
    """
    if explicit:
        return explicit

    branch = _git("rev-parse", "--abbrev-ref", "HEAD")
    if branch is not None:
        if branch and branch != "HEAD":
            return branch
        if branch == "HEAD":
            short_sha = _git("rev-parse", "--short", "HEAD")
            if short_sha is not None:
                return short_sha

    try:
        hostname = socket.gethostname()
    except OSError:
        hostname = ""
    if hostname:
        return hostname

    return "unknown"


def random_label() -> str:
    """Return a random "adjective-noun" label."""
    return f"{random.choice(_ADJECTIVES)}-{random.choice(_NOUNS)}"