"""Pytest configuration and shared fixtures for csvconv tests.

This module provides auto-use fixtures that ensure test isolation,
particularly for the output directory and logging configuration.
"""

import logging
import shutil
import tempfile

import pytest


@pytest.fixture(autouse=True)
def isolate_output_directory(monkeypatch):
    """Auto-use fixture that isolates the output directory for each test.

    This fixture:
    1. Creates a temporary directory for the test's JSON output
    2. Sets CSVCONV_OUTPUT_DIR to point to it
    3. Clears other CSVCONV_* settings so the host environment can't leak in
    4. Cleans up the directory after the test completes

    This ensures:
    - Tests never write converted/ into the installed package
    - Tests don't see each other's output files
    """
    temp_output_dir = tempfile.mkdtemp(prefix="csvconv_test_out_")

    monkeypatch.setenv("CSVCONV_OUTPUT_DIR", temp_output_dir)
    for key in ("CSVCONV_WORKERS", "CSVCONV_STALL_TIMEOUT", "CSVCONV_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)

    yield temp_output_dir

    shutil.rmtree(temp_output_dir, ignore_errors=True)


@pytest.fixture(autouse=True)
def reset_root_logger():
    """Drop handlers installed by setup_logging() once a test finishes.

    The CLI configures logging against CliRunner's temporary streams,
    which are closed once the invocation returns. pytest's own capture
    handlers are subclasses and are left alone.
    """
    root = logging.getLogger()
    level = root.level
    yield
    for handler in root.handlers[:]:
        if type(handler) is logging.StreamHandler:
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def output_dir(isolate_output_directory):
    """Path of the isolated output directory for this test."""
    return isolate_output_directory


@pytest.fixture
def input_dir():
    """Empty temporary input directory, removed after the test."""
    path = tempfile.mkdtemp(prefix="csvconv_test_in_")
    yield path
    shutil.rmtree(path, ignore_errors=True)


def write_csv(directory, name, header, rows):
    """Write a CSV file from a header and rows of values; returns its path."""
    path = f"{directory}/{name}"
    with open(path, "w", newline="") as f:
        f.write(",".join(header) + "\n")
        for row in rows:
            f.write(",".join(row) + "\n")
    return path
