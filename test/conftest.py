"""
Pytest configuration and shared fixtures for earthquery tests.

Path setup is handled by pyproject.toml [tool.pytest.ini_options] pythonpath.
"""

from pathlib import Path

import pytest

from earthquery.config import Config
from earthquery.query_publisher import QueryFilePublisher


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def query_path(tmp_path) -> Path:
    """Location of the query file Earth would poll (directory not created yet)."""
    return tmp_path / "earth" / "query.txt"


@pytest.fixture
def config(query_path):
    """Config pointing at the temp query file with fast retries."""
    return Config(**{
        "lg.earth.query.location": str(query_path),
        "query_write_retries": 2,
        "query_write_retry_interval": 0.01,
    })


@pytest.fixture
def publisher(query_path):
    """Prepared publisher with a short retry window."""
    pub = QueryFilePublisher(query_path, write_retries=2, retry_interval=0.01)
    assert pub.prepare()
    yield pub
    pub.close()


@pytest.fixture
def flyto_message():
    """Factory for fly-to messages; keyword overrides go into ``data``."""

    def _build(view_kind="camera", *, altitude_mode=None, viewer_option=None, **data):
        payload = {
            "viewKind": view_kind,
            "latitude": 37.4,
            "longitude": -122.08,
            "altitude": 500,
        }
        payload.update(data)
        message = {"type": "flyto", "data": payload}
        if altitude_mode is not None:
            message["altitudeMode"] = altitude_mode
        if viewer_option is not None:
            message["viewerOption"] = viewer_option
        return message

    return _build
