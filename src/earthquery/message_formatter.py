"""
Query serialization for Google Earth's query file interface.

Earth polls a single text file and executes the one query line it contains.
The grammar is a small set of ``key=value`` commands::

    flytoview=<Camera><latitude>..</latitude>...</Camera>
    search=Mountain View
    search=37.42,-122.08(Googleplex)
    playtour=Grand Canyon
    exittour=true
    planet=mars

QueryFormatter defines the interface so an alternative grammar can be swapped
in by the handler; EarthQueryFormatter implements the grammar above.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional

from .directives import Directive, FlyTo, Planet, Search, Tour, ViewKind
from .value_utils import is_blank

EXIT_TOUR_QUERY = "exittour=true"


def format_number(value: float) -> str:
    """
    Render a float with a stable, locale-independent decimal representation.

    Uses the shortest round-trip digits, always keeps a decimal point
    (``37.0``), and never emits exponent notation.
    """
    text = repr(float(value))
    if "e" in text or "E" in text:
        text = format(Decimal(text), "f")
    if "." not in text:
        text += ".0"
    return text


def _element(tag: str, value: str) -> str:
    return f"<{tag}>{value}</{tag}>"


class QueryFormatter(ABC):
    """
    Abstract base class for query formatting.

    Defines the interface for converting directives into the single line of
    text written to the query file.
    """

    @abstractmethod
    def format_directive(self, directive: Directive) -> str:
        """
        Format a directive into query text.

        Args:
            directive: Decoded directive.

        Returns:
            Query text without a trailing newline.
        """
        pass


class EarthQueryFormatter(QueryFormatter):
    """Formatter for the Google Earth query grammar."""

    def format_directive(self, directive: Directive) -> str:
        if isinstance(directive, FlyTo):
            return self.format_flyto(directive)
        if isinstance(directive, Search):
            return self.format_search(directive)
        if isinstance(directive, Tour):
            return self.format_tour(directive)
        if isinstance(directive, Planet):
            return self.format_planet(directive)
        raise TypeError(f"Unsupported directive type '{type(directive).__name__}'")

    def format_flyto(self, directive: FlyTo) -> str:
        kind = directive.view_kind.value
        location = directive.location
        orientation = directive.orientation

        roll = orientation.roll if directive.view_kind is ViewKind.CAMERA else None
        view_range = orientation.range if directive.view_kind is ViewKind.LOOKAT else None

        fragments: List[Optional[str]] = [
            _element("latitude", format_number(location.latitude)),
            _element("longitude", format_number(location.longitude)),
            _element("altitude", format_number(location.altitude)),
            _optional_number("heading", orientation.heading),
            _optional_number("tilt", orientation.tilt),
            _optional_number("roll", roll),
            _optional_number("range", view_range),
            _optional_text("gx:altitudeMode", directive.altitude_mode),
            _optional_text("gx:viewerOption", directive.viewer_option),
        ]
        body = "".join(fragment for fragment in fragments if fragment)
        return f"flytoview=<{kind}>{body}</{kind}>"

    def format_search(self, directive: Search) -> str:
        if not is_blank(directive.query):
            return f"search={directive.query}"

        query = f"search={format_number(directive.latitude)},{format_number(directive.longitude)}"
        if not is_blank(directive.label):
            query += f"({directive.label})"
        return query

    def format_tour(self, directive: Tour) -> str:
        if directive.play:
            return f"playtour={directive.tour_name}"
        return EXIT_TOUR_QUERY

    def format_planet(self, directive: Planet) -> str:
        return f"planet={directive.destination}"


def _optional_number(tag: str, value: Optional[float]) -> Optional[str]:
    if value is None:
        return None
    return _element(tag, format_number(value))


def _optional_text(tag: str, value: Optional[str]) -> Optional[str]:
    if is_blank(value):
        return None
    return _element(tag, value)


_default_formatter = EarthQueryFormatter()


def format_query(directive: Directive) -> str:
    """Format *directive* with the default Earth grammar."""
    return _default_formatter.format_directive(directive)
