"""
Directive handler: decode, format and publish one message at a time.
"""

from typing import Any, Optional

from . import plugin_logger
from .config import Config
from .directive_decoder import DirectiveDecoder
from .directives import Directive
from .message_formatter import EarthQueryFormatter, QueryFormatter
from .paths import resolve_query_path
from .query_publisher import PublishOutcome, QueryFilePublisher

logger = plugin_logger(__name__)


class DirectiveHandler:
    """
    Handles inbound directive messages and publishes them to the query file.

    Each message is handled fully before the call returns.  Nothing here is
    fatal: bad messages are logged and dropped, and publish failures are
    logged so the next directive is still attempted.
    """

    def __init__(
        self,
        config: Config,
        publisher: Optional[QueryFilePublisher] = None,
        *,
        decoder: Optional[DirectiveDecoder] = None,
        formatter: Optional[QueryFormatter] = None,
    ):
        """
        Initialize directive handler.

        Args:
            config: Configuration object.
            publisher: Query file publisher (created from config if not provided).
            decoder: Message decoder (default DirectiveDecoder).
            formatter: Query formatter (default EarthQueryFormatter).

        Raises:
            ValueError: If no publisher is given and config names no query file,
                        or its retry settings are out of range.
            TypeError: If the retry settings are not numbers.
        """
        self.config = config
        if publisher is None:
            query_path = resolve_query_path(config)
            if query_path is None:
                raise ValueError("No query file location configured")
            publisher = QueryFilePublisher(
                query_path,
                write_retries=int(
                    config.get("query_write_retries", QueryFilePublisher.DEFAULT_WRITE_RETRIES)
                ),
                retry_interval=float(
                    config.get("query_write_retry_interval", QueryFilePublisher.DEFAULT_RETRY_INTERVAL)
                ),
                orphan_max_age=_optional_seconds(
                    config.get("query_orphan_max_age", QueryFilePublisher.DEFAULT_ORPHAN_MAX_AGE)
                ),
            )
        self.publisher = publisher
        self.decoder = decoder or DirectiveDecoder()
        self.formatter = formatter or EarthQueryFormatter()
        self.enabled = config.get("enabled", True)
        self.debug = config.get("debug", False)
        self.dropped_count = 0

    def handle_message(self, message: Any) -> bool:
        """
        Handle an inbound directive message.

        Args:
            message: Parsed JSON object with ``type`` and ``data`` fields.

        Returns:
            True if the query file now holds this directive's query.
        """
        if not self.enabled:
            return False

        result = self.decoder.decode(message)
        if not result.ok:
            self.dropped_count += 1
            logger.warning(result.error)
            return False

        if self.debug:
            logger.debug(f"Decoded {result.operation} directive: {result.directive}")

        return self.handle_directive(result.directive)

    def handle_directive(self, directive: Directive) -> bool:
        """
        Format and publish an already decoded directive.

        Returns:
            True if the query file was renamed into place.
        """
        try:
            query = self.formatter.format_directive(directive)
        except (TypeError, ValueError) as e:
            self.dropped_count += 1
            logger.error(f"Error formatting directive {directive!r}: {e}")
            return False

        if self.debug:
            logger.debug(f"Publishing query: {query}")

        outcome = self.publisher.publish(query)
        if outcome is not PublishOutcome.RENAMED:
            logger.warning(f"Query not published ({outcome.value}): {query}")
            return False
        return True

    def close(self) -> None:
        """Stop the publisher; pending waits give up."""
        self.publisher.close()

    def enable(self) -> None:
        """Enable directive handling."""
        self.enabled = True
        logger.info("Directive handling enabled")

    def disable(self) -> None:
        """Disable directive handling."""
        self.enabled = False
        logger.info("Directive handling disabled")

    def set_debug(self, enabled: bool) -> None:
        """Enable or disable debug logging."""
        self.debug = enabled
        logger.info(f"Debug logging {'enabled' if enabled else 'disabled'}")


def _optional_seconds(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)
