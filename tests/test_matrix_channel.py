import asyncio
from types import SimpleNamespace

import pytest

from pokem.channels.matrix import MatrixChannel
from pokem.config.schema import MatrixConfig

ROOM = SimpleNamespace(room_id="!r:example.org", joined_count=3)


@pytest.fixture
def matrix(tmp_path):
    config = MatrixConfig(
        homeserver_url="https://matrix.example.org",
        username="@pokem:example.org",
        allow_list=r"@.*:example\.org",
        room_size_limit=10,
    )
    channel = MatrixChannel(config, tmp_path)
    channel.received = []

    async def on_command(cmd):
        channel.received.append((cmd.sender_id, cmd.room_id, cmd.content))
        return None

    channel.set_handlers(on_command=on_command)
    return channel


def message(body, sender="@alice:example.org", ts=1000):
    return SimpleNamespace(sender=sender, server_timestamp=ts, body=body)


async def deliver(channel, room, event):
    await channel._on_message(room, event)
    await asyncio.gather(*channel._tasks)


@pytest.mark.asyncio
async def test_command_is_dispatched(matrix):
    await deliver(matrix, ROOM, message("!pokem help"))
    assert matrix.received == [("@alice:example.org", "!r:example.org", "!pokem help")]


@pytest.mark.asyncio
async def test_ignored_messages(matrix):
    matrix._started_ms = 500
    await deliver(matrix, ROOM, message("!pokem help", sender="@pokem:example.org"))
    await deliver(matrix, ROOM, message("!pokem help", ts=100))
    await deliver(matrix, ROOM, message("hello"))
    await deliver(matrix, ROOM, message("!pokemon help"))
    await deliver(matrix, ROOM, message("!pokem help", sender="@mallory:evil.org"))
    await deliver(matrix, SimpleNamespace(room_id="!big:example.org", joined_count=50), message("!pokem help"))
    assert matrix.received == []


def test_membership_without_client(matrix):
    assert matrix.membership("!r:example.org") is None
    assert matrix.get_room("!r:example.org") is None
    assert matrix.user_id == "@pokem:example.org"


def test_tags_path_is_encoded(matrix):
    assert matrix._tags_path("!r:example.org") == (
        "/user/%40pokem%3Aexample.org/rooms/%21r%3Aexample.org/tags"
    )


def test_session_file_location(matrix, tmp_path):
    assert matrix.session_file == tmp_path / "session.json"
