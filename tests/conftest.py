import asyncio
import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Ensure project root is on sys.path for CI environments where
# Python might not automatically include it.
PROJECT_ROOT = Path(__file__).parent.parent.resolve()
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from services.dungeon_service import DungeonService
from tests.factories import FakeNotifier, FakeRoomProvider, make_settings
from utils.tasks import cancel_and_wait


@pytest.fixture
def provider() -> FakeRoomProvider:
    return FakeRoomProvider()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def settings():
    return make_settings()


@pytest_asyncio.fixture()
async def service(provider, notifier, settings):
    """An initialized DungeonService; pending timers are cancelled at teardown."""
    svc = DungeonService(provider, notifier, settings)
    await svc.initialize()
    yield svc
    cancelled = svc.scheduler.cancel_all()
    await asyncio.gather(*cancelled, return_exceptions=True)
    await cancel_and_wait(svc._background_tasks)


@pytest.fixture
def owner(provider):
    return provider.add_member(11, "Owner")


@pytest.fixture
def guest(provider):
    return provider.add_member(12, "Guest")


@pytest_asyncio.fixture()
async def room_id(service, provider, owner):
    """A dungeon created by ``owner`` who is now inside it."""
    from tests.factories import trigger_join

    await service.handle_presence_event(trigger_join(owner))
    (rid,) = list(service.registry)
    return rid
