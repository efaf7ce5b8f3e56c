"""Shared pytest fixtures and configuration."""

import os
import pytest
from freezegun import freeze_time

from presence_api.models.task import Actor, CommandContext
from presence_api.services.task_commands import TaskCommandRouter
from presence_api.services.task_controller import TaskLifecycleController
from tests.fakes import FakeChannelResolver, FakeMirror, InMemoryTaskStore
from tests.utils.factories import GUILD_ID, TODO_CHANNEL_ID, snowflake

# Set test environment variables
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("LOG_FORMAT", "text")


@pytest.fixture
def store():
    return InMemoryTaskStore()


@pytest.fixture
def mirror():
    return FakeMirror()


@pytest.fixture
def channels():
    return FakeChannelResolver(TODO_CHANNEL_ID)


@pytest.fixture
def controller(store, mirror, channels):
    return TaskLifecycleController(store=store, mirror=mirror, channels=channels)


@pytest.fixture
def router(controller):
    return TaskCommandRouter(controller)


@pytest.fixture
def todo_ctx():
    """Command issued in the task channel."""
    return CommandContext(guild_id=GUILD_ID, channel_id=TODO_CHANNEL_ID)


@pytest.fixture
def creator():
    return Actor(user_id=snowflake())


@pytest.fixture
def member():
    return Actor(user_id=snowflake())


@pytest.fixture
def moderator():
    return Actor(user_id=snowflake(), is_moderator=True)


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2024-12-09 12:00:00") as frozen_time:
        yield frozen_time
