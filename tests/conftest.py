"""
pytest configuration for swiftstore tests.

Adds the src directory to the Python path and provides an in-memory Swift
service plus entity handles bound to it.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

from fake_swift import FakeSwift  # noqa: E402

from swiftstore.account import Account  # noqa: E402


@pytest.fixture
def swift() -> FakeSwift:
    """Empty in-memory Swift service."""
    return FakeSwift()


@pytest.fixture
def account(swift: FakeSwift) -> Account:
    """Account handle on the fake service."""
    return Account(swift, upload_chunk_size=16)


@pytest.fixture
def container(swift: FakeSwift, account: Account):
    """Handle for an existing, empty container named "test"."""
    swift.add_container("test")
    return account.container("test")
