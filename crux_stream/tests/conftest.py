"""Fixtures for the stream pipeline test suite.

Provides log capture on the shared ``crux_stream`` logger and isolates the
configuration layer from the developer's environment.
"""
from __future__ import annotations

import logging
from typing import Iterator, List

import pytest

from crux_stream.base.logging import BASE_LOGGER_NAME, get_logger
from crux_stream.config import CONFIG_FILE_ENV, ENV_PREFIX, reset_config_cache


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Strip ``CRUX_STREAM_*`` variables and the config file cache."""
    import os

    for key in list(os.environ):
        if key.startswith(ENV_PREFIX) or key == CONFIG_FILE_ENV:
            monkeypatch.delenv(key, raising=False)
    reset_config_cache()
    yield
    reset_config_cache()


@pytest.fixture()
def log_capture() -> Iterator[List[logging.LogRecord]]:
    # Initialize the base logger first; initialization replaces its handlers.
    base = get_logger(BASE_LOGGER_NAME)
    records: List[logging.LogRecord] = []
    handler = logging.Handler(level=logging.DEBUG)
    handler.emit = lambda record: records.append(record)  # type: ignore
    previous = base.level
    base.setLevel(logging.DEBUG)
    base.addHandler(handler)
    try:
        yield records
    finally:
        base.removeHandler(handler)
        base.setLevel(previous)
