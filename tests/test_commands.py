import asyncio

import pytest

from pokem.app import build_context
from pokem.channels.base import InboundCommand
from pokem.commands.base import has_prefix
from pokem.config.schema import Config
from pokem.rooms.store import AUTH_PREFIX, BLOCK_TAG

HOME = "!home:example.org"
OPS = "!ops:example.org"
ALICE = "@alice:example.org"


@pytest.fixture
def ctx(channel, sleep):
    channel.add_room(HOME, alias="#home:example.org")
    channel.add_room(OPS, alias="#ops:example.org")
    return build_context(Config(rooms={"ops": OPS}), channel, sleep=sleep)


async def run(ctx, text, room_id=HOME):
    return await ctx.commands.dispatch(InboundCommand(sender_id=ALICE, room_id=room_id, content=text))


@pytest.mark.asyncio
async def test_registered_commands(ctx):
    assert ctx.commands.command_names == ["info", "poke", "block", "unblock", "set", "help"]


@pytest.mark.asyncio
async def test_help(ctx):
    reply = await run(ctx, "!pokem help")
    assert "`!pokem poke <room> <message>` - Poke the room" in reply
    assert "`!pokem info` - Print room info" in reply


@pytest.mark.asyncio
async def test_not_a_command(ctx):
    assert await run(ctx, "hello there") is None
    assert await run(ctx, "!pokemon info") is None
    assert await run(ctx, "!pokem-bot help") is None


@pytest.mark.asyncio
async def test_unknown_command(ctx):
    reply = await run(ctx, "!pokem dance")
    assert reply.startswith("Unknown command 'dance'")


@pytest.mark.asyncio
async def test_info(ctx, channel):
    channel.tags[HOME] = [f"{AUTH_PREFIX}s3"]
    reply = await run(ctx, "!pokem info")
    assert reply == (
        "This Room's Alias is: #home:example.org\n"
        f"This Room's ID is: {HOME}\n"
        "This Room's Authentication token is: s3"
    )


@pytest.mark.asyncio
async def test_poke_nickname(ctx, channel):
    assert await run(ctx, "!pokem poke ops disk is full") is None
    assert channel.bodies(OPS) == ["disk is full"]


@pytest.mark.asyncio
async def test_poke_alias(ctx, channel):
    await run(ctx, "!pokem poke #ops:example.org hi")
    assert channel.bodies(OPS) == ["hi"]


@pytest.mark.asyncio
async def test_poke_failure_replies(ctx, channel):
    reply = await run(ctx, "!pokem poke #missing:example.org hi")
    assert reply == "Failed to send message: Failed to find room with name: #missing:example.org"


@pytest.mark.asyncio
async def test_poke_failure_silent_in_blocked_room(ctx, channel):
    channel.tags[HOME] = [BLOCK_TAG]
    assert await run(ctx, "!pokem poke #missing:example.org hi") is None


@pytest.mark.asyncio
async def test_poke_without_room(ctx):
    assert await run(ctx, "!pokem poke") == "Usage: `!pokem poke <room> <message>`"


@pytest.mark.asyncio
async def test_block_and_unblock(ctx, channel):
    reply = await run(ctx, "!pokem block")
    assert reply.startswith("Pok'em has been blocked")
    assert BLOCK_TAG in channel.tags[HOME]

    assert await run(ctx, "!pokem info") is None
    assert await run(ctx, "!pokem block") is None

    reply = await run(ctx, "!pokem unblock")
    assert reply == "Pok'em has been unblocked from sending messages to this room."
    assert BLOCK_TAG not in channel.tags[HOME]


@pytest.mark.asyncio
async def test_block_write_failure(ctx, channel):
    channel.fail_tag_writes = True
    assert await run(ctx, "!pokem block") == "ERROR: Failed to block myself."


@pytest.mark.asyncio
async def test_set_auth(ctx, channel):
    assert await run(ctx, "!pokem set auth s3") == "Auth Token set to s3"
    assert channel.tags[HOME] == [f"{AUTH_PREFIX}s3"]

    assert await run(ctx, "!pokem set password s4") == "Auth Token set to s4"
    assert channel.tags[HOME] == [f"{AUTH_PREFIX}s4"]

    assert await run(ctx, "!pokem set auth off") == "Auth Token removed"
    assert channel.tags[HOME] == []


@pytest.mark.asyncio
async def test_set_auth_on_is_refused(ctx, channel):
    reply = await run(ctx, "!pokem set auth on")
    assert "probably an accident" in reply
    assert channel.tags.get(HOME, []) == []


@pytest.mark.asyncio
async def test_set_block(ctx, channel):
    assert await run(ctx, "!pokem set block on") == "Blocking messages"
    assert await ctx.store.is_blocked(HOME)
    assert await run(ctx, "!pokem set block off") == "Unblocking messages"
    assert not await ctx.store.is_blocked(HOME)
    assert await run(ctx, "!pokem set block maybe") == "Invalid value, use 'on' or 'off'"


@pytest.mark.asyncio
async def test_set_usage_shows_current_values(ctx, channel):
    channel.tags[HOME] = [f"{AUTH_PREFIX}s3"]
    reply = await run(ctx, "!pokem set")
    assert "- block: off" in reply
    assert "- Authentication Token: s3" in reply


@pytest.mark.asyncio
async def test_set_write_failure(ctx, channel):
    channel.fail_tag_writes = True
    reply = await run(ctx, "!pokem set block on")
    assert reply.startswith("ERROR: ")


@pytest.mark.asyncio
async def test_greeting(ctx, channel):
    await ctx.greet(HOME)
    body = channel.bodies(HOME)[0]
    assert body.startswith("Welcome to Pok'em!")
    assert f"This Room's ID is: {HOME}" in body


@pytest.mark.asyncio
async def test_no_greeting_in_blocked_room(ctx, channel):
    channel.tags[HOME] = [BLOCK_TAG]
    await ctx.greet(HOME)
    assert channel.sent == []


@pytest.mark.asyncio
async def test_channel_runs_command_and_replies(ctx, channel):
    await channel._handle_message(ALICE, HOME, "!pokem info")
    await asyncio.gather(*channel._tasks)
    assert f"This Room's ID is: {HOME}" in channel.bodies(HOME)[0]


@pytest.mark.asyncio
async def test_allow_list(make_channel, sleep):
    channel = make_channel(allow_list=r"@admin:example\.org")
    channel.add_room(HOME)
    build_context(Config(), channel, sleep=sleep)
    assert channel.is_allowed("@admin:example.org")
    assert not channel.is_allowed(ALICE)

    await channel._handle_message(ALICE, HOME, "!pokem help")
    assert not channel._tasks
    assert channel.sent == []


def test_prefix_needs_word_boundary():
    assert has_prefix("!pokem", "!pokem")
    assert has_prefix("!pokem help", "!pokem")
    assert has_prefix("!pokem\tinfo", "!pokem")
    assert not has_prefix("!pokemon help", "!pokem")
    assert not has_prefix("hello !pokem", "!pokem")
