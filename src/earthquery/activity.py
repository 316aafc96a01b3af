"""
Activity wrapper for running the query publisher inside a message-routing host.

The host calls ``setup()`` once, ``on_new_input_json()`` for every message that
arrives on the route, and ``shutdown()`` when the activity stops.
"""

from typing import Any, Dict, Optional

from . import plugin_logger
from .config import Config
from .directive_handler import DirectiveHandler
from .paths import location_key, resolve_query_path
from .version import __version__ as VERSION

logger = plugin_logger(__name__)


class QueryActivity:
    """Routes inbound directive messages to the query file."""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self.handler: Optional[DirectiveHandler] = None

    @property
    def running(self) -> bool:
        return self.handler is not None

    def setup(self) -> bool:
        """
        Resolve the query file location and prepare its directory.

        Returns:
            True if the activity is ready to accept messages.
        """
        logger.info(f"LG Earth Query v{VERSION} starting")
        try:
            query_path = resolve_query_path(self.config)
        except ValueError as e:
            logger.error(f"Invalid query configuration: {e}")
            return False

        if query_path is None:
            variant = self.config.get("query_variant")
            logger.error(
                f"Required configuration '{location_key(variant)}' is not set; "
                "query activity not started"
            )
            return False

        try:
            handler = DirectiveHandler(self.config)
        except (TypeError, ValueError) as e:
            logger.error(f"Invalid query configuration: {e}")
            return False
        if not handler.publisher.prepare():
            logger.error(f"Query directory {query_path.parent} is not usable")
            return False

        self.handler = handler
        logger.info(f"Query activity started. Target: {query_path}")
        return True

    def on_new_input_json(self, channel_name: str, message: Dict[str, Any]) -> bool:
        """
        Handle one message from the route.

        Args:
            channel_name: Name of the route channel the message arrived on.
            message: Parsed JSON message.

        Returns:
            True if the query file was published.
        """
        logger.info(f"Got message {message}")
        if self.handler is None:
            logger.warning(f"Message on {channel_name} ignored: activity not set up")
            return False

        try:
            return self.handler.handle_message(message)
        except Exception as e:
            logger.error(f"Error handling message on {channel_name}: {e}", exc_info=True)
            return False

    def shutdown(self) -> None:
        """Stop the activity."""
        if self.handler is None:
            return
        logger.info("Query activity stopping")
        self.handler.close()
        self.handler = None
