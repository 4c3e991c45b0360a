"""Shared fixtures: an in-memory chat channel and a recording sleep."""

from types import SimpleNamespace
from typing import Any

import pytest

from pokem.channels.base import MEMBERSHIP_JOIN, BaseChannel, RoomRef
from pokem.poke.errors import SendFailed


class FakeChannel(BaseChannel):
    """Channel keeping rooms, tags and sent events in memory."""

    name = "fake"

    def __init__(self, allow_list: str | None = None):
        super().__init__(SimpleNamespace(allow_list=allow_list))
        self.rooms: dict[str, RoomRef] = {}
        self.tags: dict[str, list[str]] = {}
        self.counts: dict[str, int] = {}
        self.sent: list[tuple[str, dict[str, Any]]] = []
        self.fail_send = False
        self.fail_tag_reads = False
        self.fail_tag_writes = False
        self.fail_member_count = False

    def add_room(
        self,
        room_id: str,
        alias: str | None = None,
        alt_aliases: tuple[str, ...] = (),
        membership: str = MEMBERSHIP_JOIN,
        members: int = 2,
    ) -> RoomRef:
        room = RoomRef(room_id, alias, list(alt_aliases), membership)
        self.rooms[room_id] = room
        self.counts[room_id] = members
        return room

    def bodies(self, room_id: str | None = None) -> list[str]:
        return [c["body"] for r, c in self.sent if room_id is None or r == room_id]

    async def start(self) -> None:
        self._running = True

    async def stop(self) -> None:
        self._running = False

    def get_room(self, room_id: str) -> RoomRef | None:
        return self.rooms.get(room_id)

    async def joined_rooms(self) -> list[RoomRef]:
        return [r for r in self.rooms.values() if r.membership == MEMBERSHIP_JOIN]

    def membership(self, room_id: str) -> str | None:
        room = self.rooms.get(room_id)
        return room.membership if room else None

    async def member_count(self, room_id: str) -> int:
        if self.fail_member_count:
            raise RuntimeError("member lookup failed")
        return self.counts.get(room_id, 0)

    async def get_tags(self, room_id: str) -> list[str]:
        if self.fail_tag_reads:
            raise RuntimeError("tag read failed")
        return list(self.tags.get(room_id, []))

    async def set_tag(self, room_id: str, tag: str) -> None:
        if self.fail_tag_writes:
            raise RuntimeError("tag write failed")
        tags = self.tags.setdefault(room_id, [])
        if tag not in tags:
            tags.append(tag)

    async def remove_tag(self, room_id: str, tag: str) -> None:
        if self.fail_tag_writes:
            raise RuntimeError("tag write failed")
        tags = self.tags.get(room_id, [])
        if tag in tags:
            tags.remove(tag)

    async def send(self, room_id: str, content: dict[str, Any]) -> None:
        if self.fail_send:
            raise SendFailed("homeserver rejected the event", room_id)
        self.sent.append((room_id, content))


class RecordingSleep:
    """Sleep replacement that records delays and can run a hook after each one."""

    def __init__(self, hook=None):
        self.delays: list[float] = []
        self.hook = hook

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self.hook:
            self.hook(len(self.delays))


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_channel():
    return FakeChannel
