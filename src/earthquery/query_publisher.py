"""
Durable publisher for the Google Earth query file.

Earth polls a fixed path, executes the query it finds there and deletes the
file.  There is no other coordination, so new text only ever appears at that
path by renaming a fully written temporary file into place.

Write protocol (one publish at a time per process):
1. Write the query to a uniquely named temp file in the target directory.
2. Wait for Earth to consume the previous query file, polling up to
   ``write_retries`` times, ``retry_interval`` seconds apart.
3. Rename the temp file onto the target path once it is absent.
4. Give up if the target is still present; the directive is dropped and the
   temp file is left for the orphan sweep.
"""

import os
import tempfile
import threading
import time
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from . import plugin_logger

logger = plugin_logger(__name__)


class PublishOutcome(str, Enum):
    """Terminal state of a single publish."""
    RENAMED = "renamed"
    ABORTED = "aborted"
    FAILED = "failed"


class QueryFilePublisher:
    """
    Publishes query text as the single current query file.

    A lock serializes publishes: a newer directive waits behind an older one
    that is still polling for Earth to consume the previous file, and never
    cancels it.
    """

    # Default write constants (can be overridden in __init__)
    DEFAULT_WRITE_RETRIES = 5
    DEFAULT_RETRY_INTERVAL = 1.0  # seconds
    DEFAULT_ORPHAN_MAX_AGE = 30.0  # seconds

    TEMP_PREFIX = ".earthquery-"
    TEMP_SUFFIX = ".tmp"

    def __init__(
        self,
        query_path: Union[str, Path],
        *,
        write_retries: int = DEFAULT_WRITE_RETRIES,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        orphan_max_age: Optional[float] = DEFAULT_ORPHAN_MAX_AGE,
    ):
        """
        Initialize the publisher.

        Args:
            query_path: Path of the query file Earth polls.
            write_retries: Number of waits for the previous file to disappear
                           before a publish is aborted (default: 5)
            retry_interval: Seconds between those waits (default: 1.0)
            orphan_max_age: Age in seconds after which leftover temp files
                            are deleted; None disables the sweep (default: 30)
        """
        if write_retries < 0:
            raise ValueError(f"write_retries must be >= 0, got {write_retries}")
        if retry_interval < 0:
            raise ValueError(f"retry_interval must be >= 0, got {retry_interval}")

        self._query_path = Path(query_path)
        self._query_dir = self._query_path.parent

        self.WRITE_RETRIES = int(write_retries)
        self.RETRY_INTERVAL = float(retry_interval)
        self.ORPHAN_MAX_AGE = orphan_max_age

        self._publish_lock = threading.Lock()
        self._stop_event = threading.Event()

        self.published_count = 0
        self.aborted_count = 0
        self.failed_count = 0
        self.last_outcome: Optional[PublishOutcome] = None

    @property
    def query_path(self) -> Path:
        return self._query_path

    @property
    def query_dir(self) -> Path:
        return self._query_dir

    @property
    def closed(self) -> bool:
        return self._stop_event.is_set()

    def prepare(self) -> bool:
        """
        Make sure the query directory exists and clear out stale temp files.

        Returns:
            True if the directory is usable, False otherwise.
        """
        with self._publish_lock:
            if not self._ensure_directory():
                return False
            self._sweep_orphans_locked()
        logger.info(f"Query file publisher ready for {self._query_path}")
        return True

    def publish(self, text: str) -> PublishOutcome:
        """
        Make *text* the current query file.

        Blocks for up to ``write_retries * retry_interval`` seconds while the
        previous file is still waiting to be consumed.

        Args:
            text: Complete query text.

        Returns:
            The terminal state of this publish.
        """
        with self._publish_lock:
            outcome = self._publish_locked(text)
            self.last_outcome = outcome
            if outcome is PublishOutcome.RENAMED:
                self.published_count += 1
            elif outcome is PublishOutcome.ABORTED:
                self.aborted_count += 1
            else:
                self.failed_count += 1
            return outcome

    def _publish_locked(self, text: str) -> PublishOutcome:
        if self.closed:
            logger.warning(f"Publisher for {self._query_path} is closed; dropping query")
            return PublishOutcome.FAILED

        if not self._ensure_directory():
            return PublishOutcome.FAILED
        self._sweep_orphans_locked()

        try:
            temp_path = self._write_temp_file(text)
        except (OSError, ValueError) as e:
            logger.error(f"Error while writing temporary query file in {self._query_dir}: {e}")
            return PublishOutcome.FAILED

        attempts = 0
        while attempts < self.WRITE_RETRIES and self._query_path.exists():
            logger.debug(
                f"Query file {self._query_path} still present, waiting "
                f"({attempts + 1}/{self.WRITE_RETRIES})"
            )
            if self._stop_event.wait(self.RETRY_INTERVAL):
                break
            attempts += 1

        if self._query_path.exists():
            logger.warning(
                f"The file {self._query_path.resolve()} has existed for too long. Aborting write."
            )
            return PublishOutcome.ABORTED

        try:
            os.replace(temp_path, self._query_path)
        except OSError as e:
            logger.error(f"Error while renaming {temp_path} to {self._query_path}: {e}")
            self._remove_quietly(temp_path)
            return PublishOutcome.FAILED

        logger.debug(f"Published query file {self._query_path}")
        return PublishOutcome.RENAMED

    def _ensure_directory(self) -> bool:
        try:
            self._query_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create query directory {self._query_dir}: {e}")
            return False
        return True

    def _write_temp_file(self, text: str) -> Path:
        """Write *text* to a new temp file beside the target and return its path."""
        fd, name = tempfile.mkstemp(
            prefix=self.TEMP_PREFIX,
            suffix=self.TEMP_SUFFIX,
            dir=str(self._query_dir),
        )
        temp_path = Path(name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
        except BaseException:
            self._remove_quietly(temp_path)
            raise
        return temp_path

    def sweep_orphans(self) -> int:
        """
        Delete temp files left behind by aborted publishes.

        Returns:
            Number of files removed.
        """
        with self._publish_lock:
            return self._sweep_orphans_locked()

    def _sweep_orphans_locked(self) -> int:
        if self.ORPHAN_MAX_AGE is None or not self._query_dir.is_dir():
            return 0

        cutoff = time.time() - self.ORPHAN_MAX_AGE
        removed = 0
        for candidate in self._query_dir.glob(f"{self.TEMP_PREFIX}*{self.TEMP_SUFFIX}"):
            if candidate == self._query_path:
                continue
            try:
                if candidate.stat().st_mtime > cutoff:
                    continue
                candidate.unlink()
            except OSError as e:
                logger.debug(f"Could not remove orphaned query file {candidate}: {e}")
                continue
            removed += 1

        if removed:
            logger.info(f"Removed {removed} orphaned temporary query file(s) from {self._query_dir}")
        return removed

    @staticmethod
    def _remove_quietly(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.debug(f"Could not remove temporary query file {path}: {e}")

    def close(self) -> None:
        """Stop accepting publishes; a publish that is waiting gives up early."""
        self._stop_event.set()
        logger.info(f"Query file publisher for {self._query_path} closed")

    def __enter__(self):
        """Context manager entry."""
        self.prepare()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
