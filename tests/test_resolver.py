import pytest

from pokem.rooms.resolver import RoomResolver, is_room_id, is_urgent, resolve_topic


@pytest.fixture
def resolver(channel):
    channel.add_room("!ops:example.org", alias="#ops:example.org", alt_aliases=("#alerts:example.org",))
    channel.add_room("!dev:example.org")
    channel.add_room("!new:example.org", alias="#new:example.org", membership="invite")
    return RoomResolver(channel)


@pytest.mark.asyncio
async def test_room_id(resolver):
    room = await resolver.resolve("!dev:example.org")
    assert room.room_id == "!dev:example.org"
    assert await resolver.resolve("!unknown:example.org") is None


@pytest.mark.asyncio
async def test_invited_room_by_id(resolver):
    room = await resolver.resolve("!new:example.org")
    assert room.membership == "invite"


@pytest.mark.asyncio
async def test_alias(resolver):
    assert (await resolver.resolve("#ops:example.org")).room_id == "!ops:example.org"
    assert (await resolver.resolve("ops:example.org")).room_id == "!ops:example.org"
    assert (await resolver.resolve("#alerts:example.org")).room_id == "!ops:example.org"


@pytest.mark.asyncio
async def test_unresolvable(resolver):
    assert await resolver.resolve("") is None
    assert await resolver.resolve("@bob:example.org") is None
    assert await resolver.resolve("ops") is None
    assert await resolver.resolve("#missing:example.org") is None


def test_is_room_id():
    assert is_room_id("!abc:example.org")
    assert not is_room_id("#abc:example.org")
    assert not is_room_id("!abc")


def test_is_urgent():
    assert is_urgent(4)
    assert is_urgent(5)
    assert not is_urgent(3)
    assert not is_urgent(None)


def test_urgent_room_configured():
    rooms = {"ops": "!a:x", "ops-urgent": "!b:x"}
    assert resolve_topic("ops", 5, rooms) == ("!b:x", False)


def test_urgent_without_urgent_room_mentions():
    assert resolve_topic("ops", 5, {"ops": "!a:x"}) == ("!a:x", True)
    assert resolve_topic("#ops:x.org", 4, {}) == ("#ops:x.org", True)


def test_normal_priority():
    rooms = {"ops": "!a:x", "ops-urgent": "!b:x"}
    assert resolve_topic("ops", 3, rooms) == ("!a:x", False)
    assert resolve_topic("ops", None, rooms) == ("!a:x", False)
    assert resolve_topic("other", None, rooms) == ("other", False)
