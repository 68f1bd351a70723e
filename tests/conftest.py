"""
Pytest configuration and shared fixtures for datemath testing.
"""

import os
from datetime import datetime

import pytest
from dateutil import parser as date_parser
from dateutil.tz import tzutc

from datemath import EvaluationConfig

from .fixtures.sample_data import REFERENCE_NOW


def utc(text: str) -> datetime:
    """Parse an ISO-8601 string into an aware UTC datetime"""
    return date_parser.isoparse(text).astimezone(tzutc())


@pytest.fixture
def reference_now():
    """Fixed reference instant used by 'now' expressions"""
    return utc(REFERENCE_NOW)


@pytest.fixture
def utc_config(reference_now):
    """Default configuration pinned to the reference instant"""
    return EvaluationConfig(now=reference_now)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep DATEMATH_* variables from the host out of the tests"""
    for key in list(os.environ):
        if key.startswith("DATEMATH_"):
            monkeypatch.delenv(key)
    yield


@pytest.fixture
def config_dir(tmp_path):
    """Empty configuration directory"""
    directory = tmp_path / "config"
    directory.mkdir()
    return directory
