"""Plain data types describing services and their routes."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Service:
    """A service with its default listening port."""

    name: str
    port: int


@dataclass
class Route:
    """A routing entry for a service."""

    backend_port: int = 0
    label: str = ""
    active: bool = False