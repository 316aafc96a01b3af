"""
Directive decoder for inbound query messages.

Messages arrive as parsed JSON objects::

    {
        "type": "flyto",
        "data": {"viewKind": "camera", "latitude": 37.4, ...},
        "altitudeMode": "absolute",
        "viewerOption": "..."
    }

``type`` selects the operation and ``data`` holds its fields.  For fly-to the
``altitudeMode`` and ``viewerOption`` fields live beside ``data``, not in it.
Field names are an external contract with the upstream route and must not
change.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from .directives import Directive, FlyTo, Location, Orientation, Planet, Search, Tour, ViewKind
from .value_utils import as_bool, as_float, as_text, is_blank

MESSAGE_FIELD_TYPE = "type"
MESSAGE_FIELD_DATA = "data"

OPERATION_FLYTO = "flyto"
OPERATION_SEARCH = "search"
OPERATION_TOUR = "tour"
OPERATION_PLANET = "planet"

FIELD_FLYTO_VIEW_KIND = "viewKind"
FIELD_FLYTO_ALTITUDE_MODE = "altitudeMode"
FIELD_FLYTO_VIEWER_OPTION = "viewerOption"
FIELD_LATITUDE = "latitude"
FIELD_LONGITUDE = "longitude"
FIELD_ALTITUDE = "altitude"
FIELD_HEADING = "heading"
FIELD_TILT = "tilt"
FIELD_ROLL = "roll"
FIELD_RANGE = "range"
FIELD_SEARCH_QUERY = "query"
FIELD_SEARCH_LABEL = "label"
FIELD_TOUR_PLAY = "play"
FIELD_TOUR_NAME = "tourName"
FIELD_PLANET_DESTINATION = "destination"


class DirectiveDecodeError(Exception):
    """Raised when a message cannot be turned into a directive."""
    pass


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of decoding one message."""
    operation: str
    directive: Optional[Directive] = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.directive is not None


class DirectiveDecoder:
    """
    Turns inbound message dictionaries into typed directives.

    Decoding never raises for malformed input: every failure is reported in
    the returned DecodeResult so the caller can log it and drop the message.
    """

    def __init__(self) -> None:
        self._operations: Dict[str, Callable[[Mapping[str, Any], Mapping[str, Any]], Directive]] = {
            OPERATION_FLYTO: self._decode_flyto,
            OPERATION_SEARCH: self._decode_search,
            OPERATION_TOUR: self._decode_tour,
            OPERATION_PLANET: self._decode_planet,
        }

    @property
    def operations(self) -> tuple:
        return tuple(self._operations)

    def decode(self, message: Any) -> DecodeResult:
        """
        Decode a single message.

        Args:
            message: Parsed JSON object with ``type`` and ``data`` fields.

        Returns:
            DecodeResult holding either the directive or an error description.
        """
        if not isinstance(message, Mapping):
            return DecodeResult(operation="", error="Message must be a JSON object")

        operation = as_text(message.get(MESSAGE_FIELD_TYPE)) or ""
        decode_operation = self._operations.get(operation)
        if decode_operation is None:
            return DecodeResult(
                operation=operation,
                error=f"Unknown Google Earth operation {operation or '<missing>'}",
            )

        data = message.get(MESSAGE_FIELD_DATA)
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            return DecodeResult(
                operation=operation,
                error=f"{operation} message '{MESSAGE_FIELD_DATA}' must be a JSON object",
            )

        try:
            directive = decode_operation(data, message)
        except DirectiveDecodeError as e:
            return DecodeResult(operation=operation, error=str(e))
        return DecodeResult(operation=operation, directive=directive)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def _decode_flyto(self, data: Mapping[str, Any], message: Mapping[str, Any]) -> FlyTo:
        raw_kind = data.get(FIELD_FLYTO_VIEW_KIND)
        view_kind = ViewKind.parse(raw_kind)
        if view_kind is None:
            raise DirectiveDecodeError(f"flyto had unknown type {raw_kind}")

        location = Location(
            latitude=_required_float(data, FIELD_LATITUDE, OPERATION_FLYTO),
            longitude=_required_float(data, FIELD_LONGITUDE, OPERATION_FLYTO),
            altitude=_required_float(data, FIELD_ALTITUDE, OPERATION_FLYTO),
        )

        # Older producers put range next to the data block instead of inside it.
        range_source = data if data.get(FIELD_RANGE) is not None else message
        orientation = Orientation(
            heading=_optional_float(data, FIELD_HEADING, OPERATION_FLYTO),
            tilt=_optional_float(data, FIELD_TILT, OPERATION_FLYTO),
            roll=_optional_float(data, FIELD_ROLL, OPERATION_FLYTO),
            range=_optional_float(range_source, FIELD_RANGE, OPERATION_FLYTO),
        )

        return FlyTo(
            view_kind=view_kind,
            location=location,
            orientation=orientation,
            altitude_mode=as_text(message.get(FIELD_FLYTO_ALTITUDE_MODE)),
            viewer_option=as_text(message.get(FIELD_FLYTO_VIEWER_OPTION)),
        )

    def _decode_search(self, data: Mapping[str, Any], message: Mapping[str, Any]) -> Search:
        query = as_text(data.get(FIELD_SEARCH_QUERY))
        if not is_blank(query):
            return Search(query=query)

        latitude = _optional_float(data, FIELD_LATITUDE, OPERATION_SEARCH)
        longitude = _optional_float(data, FIELD_LONGITUDE, OPERATION_SEARCH)
        if latitude is None or longitude is None:
            raise DirectiveDecodeError(
                "Search message either has no query or is missing either latitude or longitude"
            )

        label = as_text(data.get(FIELD_SEARCH_LABEL))
        return Search(latitude=latitude, longitude=longitude, label=label)

    def _decode_tour(self, data: Mapping[str, Any], message: Mapping[str, Any]) -> Tour:
        raw_play = data.get(FIELD_TOUR_PLAY)
        play = as_bool(raw_play)
        if play is None:
            raise DirectiveDecodeError(
                f"Tour message '{FIELD_TOUR_PLAY}' must be a boolean, got {raw_play!r}"
            )
        if not play:
            return Tour(play=False)

        tour_name = as_text(data.get(FIELD_TOUR_NAME))
        if is_blank(tour_name):
            raise DirectiveDecodeError("Tour message had no tour name")
        return Tour(play=True, tour_name=tour_name)

    def _decode_planet(self, data: Mapping[str, Any], message: Mapping[str, Any]) -> Planet:
        destination = as_text(data.get(FIELD_PLANET_DESTINATION))
        if destination is None:
            raise DirectiveDecodeError("Planet message had no destination")
        return Planet(destination=destination)


def _required_float(data: Mapping[str, Any], key: str, operation: str) -> float:
    value = _optional_float(data, key, operation)
    if value is None:
        raise DirectiveDecodeError(f"{operation} message is missing required field '{key}'")
    return value


def _optional_float(data: Mapping[str, Any], key: str, operation: str) -> Optional[float]:
    raw = data.get(key)
    if raw is None:
        return None
    value = as_float(raw)
    if value is None:
        raise DirectiveDecodeError(
            f"{operation} message field '{key}' must be a finite number, got {raw!r}"
        )
    return value


_default_decoder = DirectiveDecoder()


def decode_directive(message: Any) -> DecodeResult:
    """Decode *message* with a shared decoder instance."""
    return _default_decoder.decode(message)
