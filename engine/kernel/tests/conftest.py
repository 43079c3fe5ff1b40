"""
Engine kernel test configuration.

Kernel tests use function-scoped fixtures and the in-memory store.
Postgres tests skip themselves unless TEST_DATABASE_URL is set.
"""

import logging

import pytest


@pytest.fixture(autouse=True)
def _kernel_logging(caplog):
    # Compaction and loader failures are logged, not raised; capture them.
    caplog.set_level(logging.DEBUG, logger="engine.kernel")
