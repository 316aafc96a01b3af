"""
Typed directives decoded from inbound query messages.

A directive is built fresh for each message, handed to the formatter and
thrown away.  None of these types carry behaviour beyond small conveniences.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class ViewKind(str, Enum):
    """KML view element a fly-to targets."""
    CAMERA = "Camera"
    LOOKAT = "LookAt"

    @classmethod
    def parse(cls, value: Any) -> Optional["ViewKind"]:
        """Match wire values such as ``camera`` or ``LookAt``; None if unknown."""
        if not isinstance(value, str):
            return None
        normalized = value.strip().lower()
        for kind in cls:
            if kind.value.lower() == normalized:
                return kind
        return None


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    altitude: float


@dataclass(frozen=True)
class Orientation:
    """Optional view angles. ``roll`` only applies to Camera, ``range`` only to LookAt."""
    heading: Optional[float] = None
    tilt: Optional[float] = None
    roll: Optional[float] = None
    range: Optional[float] = None


@dataclass(frozen=True)
class FlyTo:
    view_kind: ViewKind
    location: Location
    orientation: Orientation = field(default_factory=Orientation)
    altitude_mode: Optional[str] = None
    viewer_option: Optional[str] = None


@dataclass(frozen=True)
class Search:
    """Free-text search, or a coordinate search with an optional label."""
    query: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    label: Optional[str] = None

    @property
    def uses_coordinates(self) -> bool:
        return not self.query


@dataclass(frozen=True)
class Tour:
    play: bool
    tour_name: Optional[str] = None


@dataclass(frozen=True)
class Planet:
    destination: str


Directive = Union[FlyTo, Search, Tour, Planet]
