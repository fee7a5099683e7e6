"""Shared pytest fixtures for civicline tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402

from civicline.domain.idempotency import IdempotencyGuard, InMemoryIdempotencyStore  # noqa: E402
from civicline.domain.references import InMemoryReferenceReserver, ReferenceAllocator  # noqa: E402
from civicline.domain.sessions import InMemorySessionStore  # noqa: E402
from civicline.infra.memory_stores import InMemoryCaseStore  # noqa: E402
from civicline.infra.settings import PortalSettings  # noqa: E402
from civicline.services import engine  # noqa: E402
from civicline.services.dispatcher import Dispatcher  # noqa: E402

from helpers import DEPARTMENTS, TENANT, FakeClock, FakeMessenger, FakeNotifier  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_dispatcher_singleton():
    """The process-wide dispatcher must not leak sessions between tests."""
    engine.set_dispatcher(None)
    yield
    engine.set_dispatcher(None)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return PortalSettings(tenant_id=TENANT)


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def case_store(clock):
    return InMemoryCaseStore(departments=DEPARTMENTS, clock=clock)


@pytest.fixture
def session_store(clock):
    return InMemorySessionStore(clock=clock)


@pytest.fixture
def reserver():
    return InMemoryReferenceReserver()


@pytest.fixture
def dispatcher(settings, session_store, reserver, case_store, messenger, notifier, clock):
    return Dispatcher(
        settings=settings,
        sessions=session_store,
        guard=IdempotencyGuard(InMemoryIdempotencyStore(clock=clock)),
        allocator=ReferenceAllocator(reserver),
        cases=case_store,
        messenger=messenger,
        notifier=notifier,
        clock=clock,
    )
