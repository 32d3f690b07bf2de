"""
Pytest configuration.

Async tests are marked with ``pytest.mark.anyio`` and run on asyncio only.
"""

import pytest


@pytest.fixture
def anyio_backend():
    """Run anyio-marked tests on the asyncio backend (trio is not installed)."""
    return "asyncio"
