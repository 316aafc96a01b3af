"""
Tests for the query file write protocol.

A small reader thread stands in for Google Earth: it reads the query file and
deletes it, which is all Earth does.
"""

import logging
import os
import threading
import time

import pytest

from earthquery.query_publisher import PublishOutcome, QueryFilePublisher


def _temp_files(directory):
    return sorted(directory.glob(f"{QueryFilePublisher.TEMP_PREFIX}*{QueryFilePublisher.TEMP_SUFFIX}"))


class EarthReader:
    """Consumes the query file the way Earth does: read, then delete."""

    def __init__(self, query_path, poll_interval=0.005):
        self.query_path = query_path
        self.poll_interval = poll_interval
        self.seen = []
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)

    def start(self):
        self._thread.start()
        return self

    def stop(self):
        self._stop.set()
        self._thread.join(timeout=5)
        self._consume()

    def _consume(self):
        if self.query_path.exists():
            self.seen.append(self.query_path.read_text(encoding="utf-8"))
            self.query_path.unlink()

    def _run(self):
        while not self._stop.is_set():
            self._consume()
            self._stop.wait(self.poll_interval)


def test_prepare_creates_directory(query_path):
    publisher = QueryFilePublisher(query_path)

    assert not query_path.parent.exists()
    assert publisher.prepare()
    assert query_path.parent.is_dir()
    assert publisher.query_dir == query_path.parent


def test_publish_when_target_absent(publisher, query_path):
    outcome = publisher.publish("planet=mars")

    assert outcome is PublishOutcome.RENAMED
    assert query_path.read_text(encoding="utf-8") == "planet=mars"
    assert _temp_files(query_path.parent) == []
    assert publisher.published_count == 1
    assert publisher.last_outcome is PublishOutcome.RENAMED


def test_publish_creates_missing_directory(query_path):
    publisher = QueryFilePublisher(query_path, write_retries=0)

    assert publisher.publish("exittour=true") is PublishOutcome.RENAMED
    assert query_path.read_text(encoding="utf-8") == "exittour=true"


def test_publish_waits_for_reader(query_path):
    publisher = QueryFilePublisher(query_path, write_retries=50, retry_interval=0.01)
    publisher.prepare()
    query_path.write_text("planet=earth", encoding="utf-8")

    timer = threading.Timer(0.1, query_path.unlink)
    timer.start()
    try:
        outcome = publisher.publish("planet=mars")
    finally:
        timer.join()

    assert outcome is PublishOutcome.RENAMED
    assert query_path.read_text(encoding="utf-8") == "planet=mars"


def test_same_text_twice_leaves_one_file(publisher, query_path):
    assert publisher.publish("playtour=Foo") is PublishOutcome.RENAMED
    query_path.unlink()
    assert publisher.publish("playtour=Foo") is PublishOutcome.RENAMED

    assert query_path.read_text(encoding="utf-8") == "playtour=Foo"
    assert [p.name for p in query_path.parent.iterdir()] == [query_path.name]


def test_abort_when_target_never_consumed(query_path, caplog):
    publisher = QueryFilePublisher(query_path, write_retries=3, retry_interval=0.01)
    publisher.prepare()
    query_path.write_text("planet=earth", encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="earthquery"):
        outcome = publisher.publish("planet=mars")

    assert outcome is PublishOutcome.ABORTED
    assert query_path.read_text(encoding="utf-8") == "planet=earth"
    assert "has existed for too long. Aborting write." in caplog.text
    assert publisher.aborted_count == 1
    # The aborted temp file is kept; the orphan sweep deals with it later.
    orphans = _temp_files(query_path.parent)
    assert len(orphans) == 1
    assert orphans[0].read_text(encoding="utf-8") == "planet=mars"


def test_abort_waits_full_retry_window(query_path):
    publisher = QueryFilePublisher(query_path, write_retries=4, retry_interval=0.05)
    publisher.prepare()
    query_path.write_text("planet=earth", encoding="utf-8")

    started = time.monotonic()
    assert publisher.publish("planet=mars") is PublishOutcome.ABORTED
    assert time.monotonic() - started >= 0.15


def test_zero_retries_aborts_immediately(query_path):
    publisher = QueryFilePublisher(query_path, write_retries=0, retry_interval=10)
    publisher.prepare()
    query_path.write_text("planet=earth", encoding="utf-8")

    started = time.monotonic()
    assert publisher.publish("planet=mars") is PublishOutcome.ABORTED
    assert time.monotonic() - started < 5


def test_close_cuts_wait_short(query_path):
    publisher = QueryFilePublisher(query_path, write_retries=100, retry_interval=1.0)
    publisher.prepare()
    query_path.write_text("planet=earth", encoding="utf-8")

    timer = threading.Timer(0.1, publisher.close)
    timer.start()
    started = time.monotonic()
    try:
        outcome = publisher.publish("planet=mars")
    finally:
        timer.join()

    assert outcome is PublishOutcome.ABORTED
    assert time.monotonic() - started < 5
    assert publisher.closed


def test_publish_after_close_fails(publisher, query_path):
    publisher.close()

    assert publisher.publish("planet=mars") is PublishOutcome.FAILED
    assert not query_path.exists()
    assert publisher.failed_count == 1


def test_uncreatable_directory(tmp_path, caplog):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    publisher = QueryFilePublisher(blocker / "query.txt")

    assert publisher.prepare() is False
    assert publisher.publish("planet=mars") is PublishOutcome.FAILED
    assert "Cannot create query directory" in caplog.text


def test_rename_failure_is_reported(publisher, query_path, monkeypatch, caplog):
    def _fail(src, dst):
        raise PermissionError("denied")

    monkeypatch.setattr("earthquery.query_publisher.os.replace", _fail)

    outcome = publisher.publish("planet=mars")

    assert outcome is PublishOutcome.FAILED
    assert not query_path.exists()
    assert _temp_files(query_path.parent) == []
    assert "Error while renaming" in caplog.text


def test_write_failure_is_reported(publisher, query_path, monkeypatch, caplog):
    def _fail(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr("earthquery.query_publisher.tempfile.mkstemp", _fail)

    assert publisher.publish("planet=mars") is PublishOutcome.FAILED
    assert "disk full" in caplog.text

    monkeypatch.undo()
    assert publisher.publish("planet=venus") is PublishOutcome.RENAMED


def test_unencodable_text_fails_without_leftovers(publisher, query_path, caplog):
    outcome = publisher.publish("planet=\ud800")

    assert outcome is PublishOutcome.FAILED
    assert publisher.failed_count == 1
    assert not query_path.exists()
    assert _temp_files(query_path.parent) == []
    assert "Error while writing temporary query file" in caplog.text

    assert publisher.publish("planet=mars") is PublishOutcome.RENAMED
    assert query_path.read_text(encoding="utf-8") == "planet=mars"


def test_sweep_removes_only_stale_temp_files(query_path):
    publisher = QueryFilePublisher(query_path, orphan_max_age=30)
    publisher.prepare()
    directory = query_path.parent

    stale = directory / ".earthquery-123.tmp"
    fresh = directory / ".earthquery-456.tmp"
    unrelated = directory / "query789.tmp"
    for path in (stale, fresh, unrelated):
        path.write_text("x", encoding="utf-8")
    old = time.time() - 120
    os.utime(stale, (old, old))
    os.utime(unrelated, (old, old))

    assert publisher.sweep_orphans() == 1
    assert not stale.exists()
    assert fresh.exists()
    assert unrelated.exists()


def test_sweep_disabled(query_path):
    publisher = QueryFilePublisher(query_path, orphan_max_age=None)
    publisher.prepare()
    stale = query_path.parent / ".earthquery-123.tmp"
    stale.write_text("x", encoding="utf-8")
    old = time.time() - 3600
    os.utime(stale, (old, old))

    assert publisher.sweep_orphans() == 0
    assert stale.exists()


def test_prepare_sweeps_orphans(query_path):
    query_path.parent.mkdir(parents=True)
    stale = query_path.parent / ".earthquery-999.tmp"
    stale.write_text("x", encoding="utf-8")
    old = time.time() - 3600
    os.utime(stale, (old, old))

    QueryFilePublisher(query_path, orphan_max_age=30).prepare()

    assert not stale.exists()


def test_concurrent_publishes_are_serialized(query_path):
    publisher = QueryFilePublisher(query_path, write_retries=500, retry_interval=0.01)
    publisher.prepare()
    reader = EarthReader(query_path).start()

    texts = [f"search=query {i}" for i in range(5)]
    outcomes = []
    outcomes_lock = threading.Lock()

    def _publish(text):
        outcome = publisher.publish(text)
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=_publish, args=(text,)) for text in texts]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    reader.stop()

    assert outcomes == [PublishOutcome.RENAMED] * len(texts)
    assert sorted(reader.seen) == sorted(texts)
    assert _temp_files(query_path.parent) == []


def test_invalid_retry_settings(query_path):
    with pytest.raises(ValueError):
        QueryFilePublisher(query_path, write_retries=-1)
    with pytest.raises(ValueError):
        QueryFilePublisher(query_path, retry_interval=-0.5)


def test_context_manager(query_path):
    with QueryFilePublisher(query_path, write_retries=0) as publisher:
        assert publisher.publish("planet=mars") is PublishOutcome.RENAMED
    assert publisher.closed
