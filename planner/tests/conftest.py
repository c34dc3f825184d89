"""
Pytest configuration for planner tests.

Why: Force AnyIO to use the asyncio backend and give every test a fresh,
fully in-memory service graph so state never leaks between tests.
"""
import os
import sys
from pathlib import Path

import pytest

# Keep prod guards and backend switches out of the test process before the
# app module is imported by any test.
for _var in ("PLANNER_ENV", "PLANNER_STORE", "BLOB_BACKEND", "EMAIL_BACKEND", "PAYSTACK_SECRET_KEY"):
    os.environ.pop(_var, None)

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

from utils.fakes import make_services  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def services():
    """Install an in-memory service graph for the web app and hand it to the test."""
    from planner.web import wiring

    fresh = make_services()
    wiring.set_services(fresh)
    yield fresh
    wiring.set_services(None)
