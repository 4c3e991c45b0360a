"""内置聊天命令：info、poke、block、unblock、set、help。"""

from typing import Mapping

from loguru import logger

from pokem.channels.base import BaseChannel
from pokem.commands.base import Command, CommandContext
from pokem.commands.registry import CommandRegistry
from pokem.poke.errors import PokeError, TagWriteFailure
from pokem.poke.pipeline import DeliveryPipeline, SendPolicy
from pokem.rooms.store import RoomConfigStore

# 兼容旧版本的auth别名
AUTH_KEYS = ("auth", "authentication", "password", "pass")


async def room_info(channel: BaseChannel, store: RoomConfigStore, room_id: str) -> str:
    """
    生成房间信息：别名、ID和认证令牌（如果设置了）。

    Args:
        channel: 渠道
        store: 房间配置存储
        room_id: 房间ID

    Returns:
        多行文本
    """
    lines = []
    room = channel.get_room(room_id)
    if room and room.canonical_alias:
        lines.append(f"This Room's Alias is: {room.canonical_alias}")
    lines.append(f"This Room's ID is: {room_id}")
    config = await store.get(room_id)
    if config.auth:
        lines.append(f"This Room's Authentication token is: {config.auth}")
    return "\n".join(lines)


class InfoCommand(Command):
    """输出房间信息。"""

    def __init__(self, channel: BaseChannel, store: RoomConfigStore, policy: SendPolicy):
        self._channel = channel
        self._store = store
        self._policy = policy

    @property
    def name(self) -> str:
        return "info"

    @property
    def description(self) -> str:
        return "Print room info"

    async def execute(self, ctx: CommandContext) -> str | None:
        if not await self._policy.allows(ctx.room_id):
            return None
        return await room_info(self._channel, self._store, ctx.room_id)


class PokeCommand(Command):
    """
    从聊天中poke另一个房间。

    目标可以是房间ID、别名或配置中的房间昵称。
    """

    usage = "<room> <message>"

    def __init__(
        self,
        pipeline: DeliveryPipeline,
        policy: SendPolicy,
        nicknames: Mapping[str, str] | None = None,
    ):
        self._pipeline = pipeline
        self._policy = policy
        self._nicknames = nicknames or {}

    @property
    def name(self) -> str:
        return "poke"

    @property
    def description(self) -> str:
        return "Poke the room"

    async def execute(self, ctx: CommandContext) -> str | None:
        args = ctx.args
        room = args[1] if len(args) > 1 else ""
        message = " ".join(args[2:])
        logger.debug(f"Room: {room!r}, Message: {message!r}")

        if not room:
            return f"Usage: `{ctx.prefix} poke {self.usage}`"

        target = self._nicknames.get(room, room)
        try:
            await self._pipeline.deliver(target, message)
        except PokeError as e:
            logger.error(f"Failed to send message: {e}")
            # 来源房间本身不能发送消息时不回复
            if await self._policy.allows(ctx.room_id):
                return f"Failed to send message: {e}"
        return None


class BlockCommand(Command):
    """禁止向当前房间发送通知。"""

    def __init__(self, store: RoomConfigStore, policy: SendPolicy):
        self._store = store
        self._policy = policy

    @property
    def name(self) -> str:
        return "block"

    @property
    def description(self) -> str:
        return "Block Pok'em from sending messages to this room"

    async def execute(self, ctx: CommandContext) -> str | None:
        # 已经不能向房间发送消息时不做任何修改
        if not await self._policy.allows(ctx.room_id):
            return None
        config = await self._store.get(ctx.room_id)
        config.block = True
        try:
            await self._store.set(ctx.room_id, config)
        except TagWriteFailure:
            return "ERROR: Failed to block myself."
        return (
            "Pok'em has been blocked from sending messages to this room.\n"
            f"Send `{ctx.prefix} unblock` to allow messages again."
        )


class UnblockCommand(Command):
    """重新允许向当前房间发送通知。"""

    def __init__(self, store: RoomConfigStore):
        self._store = store

    @property
    def name(self) -> str:
        return "unblock"

    @property
    def description(self) -> str:
        return "Unblock Pok'em to allow notifications to this room"

    async def execute(self, ctx: CommandContext) -> str | None:
        config = await self._store.get(ctx.room_id)
        config.block = False
        try:
            await self._store.set(ctx.room_id, config)
        except TagWriteFailure:
            return "ERROR: Failed to unblock myself."
        return "Pok'em has been unblocked from sending messages to this room."


class SetCommand(Command):
    """
    修改当前房间的配置。

    - set block on|off
    - set auth <token>|off（兼容旧的authentication/password/pass写法）
    其他写法返回用法说明和当前配置。
    """

    usage = "<block|auth> <on|off|token>"

    def __init__(self, store: RoomConfigStore):
        self._store = store

    @property
    def name(self) -> str:
        return "set"

    @property
    def description(self) -> str:
        return "Configure settings for Pok'em in this room"

    async def execute(self, ctx: CommandContext) -> str | None:
        config = await self._store.get(ctx.room_id)
        key = ctx.arg(1)
        value = ctx.arg(2)
        logger.info(f"Setting room config for {ctx.room_id}: {key} {value}")

        if key == "block":
            if not value:
                response = f"Block cannot be empty\n`{ctx.prefix} set block [on|off]`"
            elif value.lower() == "on":
                config.block = True
                response = "Blocking messages"
            elif value.lower() == "off":
                config.block = False
                response = "Unblocking messages"
            else:
                response = "Invalid value, use 'on' or 'off'"
        elif key in AUTH_KEYS:
            if not value:
                response = f"Token cannot be empty\n`{ctx.prefix} set auth [off|token]`"
            elif value.lower() == "on":
                response = "Tried setting the Auth Token to 'on', that was probably an accident"
            elif value.lower() == "off":
                config.auth = None
                response = "Auth Token removed"
            else:
                config.auth = value
                response = f"Auth Token set to {value}"
        else:
            block_status = "on" if config.block else "off"
            token = f"\n- Authentication Token: {config.auth}" if config.auth else ""
            response = (
                f"Usage:\n`{ctx.prefix} set [block|auth] <on|off|token>`\n"
                f"Current values:\n- block: {block_status}{token}"
            )

        # 总是写回，顺便清理残留的标签
        await self._store.set(ctx.room_id, config)
        return response


class HelpCommand(Command):
    """列出所有可用命令。"""

    def __init__(self, registry: CommandRegistry):
        self._registry = registry

    @property
    def name(self) -> str:
        return "help"

    @property
    def description(self) -> str:
        return "Show available commands"

    async def execute(self, ctx: CommandContext) -> str | None:
        lines = ["Available commands:"]
        lines.extend(f"- {cmd.help_line(ctx.prefix)}" for cmd in self._registry.commands)
        return "\n".join(lines)
