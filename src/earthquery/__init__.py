"""
LG Earth Query - Publish camera directives to Google Earth's query file.

This package listens for structured directive messages (fly-to, search, tour,
planet), renders each one into the line-oriented query grammar understood by
Google Earth's file-watch interface, and publishes the text as the single
current query file that Earth polls and deletes.
"""

import logging
import sys

from .version import __version__

__author__ = "LG Earth Query Contributors"
__license__ = "Apache-2.0"

# Central logger name for the package.  A host activity can call
# set_plugin_logger_name() at startup so every submodule logs under the
# hierarchy that the host manages.  During tests the default "earthquery"
# parent is used, which pytest's caplog captures automatically.
_PLUGIN_LOGGER_NAME: str = "earthquery"


def set_plugin_logger_name(name: str) -> None:
    """Override the package logger name (called by the host at startup)."""
    global _PLUGIN_LOGGER_NAME
    _PLUGIN_LOGGER_NAME = name

    # Rebind module-level logger objects in already-imported submodules.
    _submodule_names = (
        "config", "query_publisher",
        "directive_handler", "activity", "cli",
    )
    for suffix in _submodule_names:
        module = sys.modules.get(f"earthquery.{suffix}")
        if module is not None and hasattr(module, "logger"):
            module.logger = plugin_logger(module.__name__)


def plugin_logger(module: str) -> logging.Logger:
    """Return a child logger under the package hierarchy.

    Usage in submodules::

        from earthquery import plugin_logger
        logger = plugin_logger(__name__)

    Under a host this yields e.g. ``<host>.earthquery.query_publisher``.
    During tests it yields ``earthquery.query_publisher``.
    """
    base = _PLUGIN_LOGGER_NAME
    if module.startswith("earthquery."):
        return logging.getLogger(f"{base}.{module[len('earthquery.'):]}")
    return logging.getLogger(base)


from .config import Config
from .directives import FlyTo, Location, Orientation, Planet, Search, Tour, ViewKind
from .directive_decoder import DecodeResult, DirectiveDecoder, DirectiveDecodeError
from .message_formatter import EarthQueryFormatter, QueryFormatter
from .query_publisher import PublishOutcome, QueryFilePublisher
from .directive_handler import DirectiveHandler
from .activity import QueryActivity

__all__ = [
    "Config",
    "DecodeResult",
    "DirectiveDecodeError",
    "DirectiveDecoder",
    "DirectiveHandler",
    "EarthQueryFormatter",
    "FlyTo",
    "Location",
    "Orientation",
    "Planet",
    "PublishOutcome",
    "QueryActivity",
    "QueryFilePublisher",
    "QueryFormatter",
    "Search",
    "Tour",
    "ViewKind",
]
