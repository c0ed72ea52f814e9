"""Service test fixtures — in-memory stores wired into the real services.

Invariants:
    - Every test gets fresh fakes (no shared state across tests)
    - clock is a strictly increasing counter, so createdAt / updatedAt are ordered
    - alice and bob are authenticated actors; anonymous is signed out

Design Decisions:
    - Fakes over AsyncMock for stores: ordering and feed assertions need real state
"""

import itertools

import pytest

from timeline.core.actor_context import ActorContext
from timeline.services.asset_lifecycle import AssetLifecycleManager
from timeline.services.mutation_coordinator import MutationCoordinator
from timeline.services.subscription_manager import SubscriptionManager
from tests.services.fake_stores import (
    InMemoryBlobStore, InMemoryDocumentStore, InMemoryIntentLog,
)


@pytest.fixture
def documents():
    return InMemoryDocumentStore()


@pytest.fixture
def blobs():
    return InMemoryBlobStore()


@pytest.fixture
def intents():
    return InMemoryIntentLog()


@pytest.fixture
def assets(blobs):
    return AssetLifecycleManager(blobs)


@pytest.fixture
def clock():
    ticks = itertools.count(1_000)
    return lambda: next(ticks)


@pytest.fixture
def coordinator(documents, assets, intents, clock):
    return MutationCoordinator(documents, assets, intents, clock=clock)


@pytest.fixture
def subscriptions(documents):
    return SubscriptionManager(documents)


@pytest.fixture
def alice():
    return ActorContext("alice", "Alice")


@pytest.fixture
def bob():
    return ActorContext("bob", "Bob")


@pytest.fixture
def anonymous():
    return ActorContext()