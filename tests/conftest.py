"""
Shared fixtures for the Crévion test suite.

Every service runs against an in-memory document store so tests never
touch the filesystem unless they ask for tmp_path explicitly.
"""

import pytest

from crevion.errors import ConfigUnavailable
from crevion.permission_manager import PermissionManager
from crevion.permissions import Member
from crevion.storage import DocumentStore, MemoryDocumentStore

OWNER_ID = "100"


class FailingStore(DocumentStore):
    """Store whose backend is unreachable."""

    async def _read(self, name):
        raise ConfigUnavailable()

    async def _write(self, name, document):
        raise ConfigUnavailable()


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def manager(store):
    return PermissionManager(store, seed_owners=[OWNER_ID], builtin_roles={})


@pytest.fixture
def failing_manager():
    return PermissionManager(FailingStore(timeout=1), seed_owners=[OWNER_ID], builtin_roles={})


@pytest.fixture
def owner():
    return Member.create(OWNER_ID, [])