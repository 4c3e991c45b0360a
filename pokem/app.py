"""pokem应用上下文。

启动时构建一次PokemContext，把渠道、房间配置存储、解析器、发送策略、
投递流程和命令注册表组装在一起，然后传给HTTP服务器和命令处理。
"""

import asyncio
from dataclasses import dataclass, field
from typing import Mapping

from loguru import logger

from pokem.channels.base import BaseChannel
from pokem.commands.builtin import (
    BlockCommand,
    HelpCommand,
    InfoCommand,
    PokeCommand,
    SetCommand,
    UnblockCommand,
    room_info,
)
from pokem.commands.registry import CommandRegistry
from pokem.config.schema import Config
from pokem.daemon.server import PokeServer
from pokem.poke.pipeline import DeliveryPipeline, SendPolicy, Sleep
from pokem.rooms.resolver import RoomResolver
from pokem.rooms.store import RoomConfigStore


@dataclass
class PokemContext:
    """运行期间共享的组件。"""
    config: Config
    channel: BaseChannel
    store: RoomConfigStore
    resolver: RoomResolver
    policy: SendPolicy
    pipeline: DeliveryPipeline
    commands: CommandRegistry
    nicknames: Mapping[str, str] = field(default_factory=dict)

    async def greet(self, room_id: str) -> None:
        """加入房间后发送欢迎信息和房间信息。"""
        if not await self.policy.allows(room_id):
            return
        prefix = self.commands.prefix
        welcome = f"Welcome to Pok'em!\n\nSend `{prefix} help` to see available commands."
        info = await room_info(self.channel, self.store, room_id)
        await self.channel.send_text(room_id, f"{welcome}\n\n{info}", markdown=True)


def build_context(config: Config, channel: BaseChannel, sleep: Sleep = asyncio.sleep) -> PokemContext:
    """
    组装应用上下文并注册内置命令。

    Args:
        config: 根配置
        channel: 已创建（尚未启动）的渠道
        sleep: 等待加入房间时使用的休眠函数

    Returns:
        应用上下文
    """
    matrix = config.matrix
    store = RoomConfigStore(channel)
    resolver = RoomResolver(channel)
    policy = SendPolicy(channel, store, matrix.room_size_limit if matrix else None)
    pipeline = DeliveryPipeline(
        channel,
        resolver,
        store,
        policy,
        default_format=matrix.format if matrix else None,
        sleep=sleep,
    )

    commands = CommandRegistry(prefix=config.command_prefix)
    commands.register(InfoCommand(channel, store, policy))
    commands.register(PokeCommand(pipeline, policy, config.rooms))
    commands.register(BlockCommand(store, policy))
    commands.register(UnblockCommand(store))
    commands.register(SetCommand(store))
    commands.register(HelpCommand(commands))

    ctx = PokemContext(
        config=config,
        channel=channel,
        store=store,
        resolver=resolver,
        policy=policy,
        pipeline=pipeline,
        commands=commands,
        nicknames=config.rooms,
    )
    channel.set_handlers(on_command=commands.dispatch, on_join=ctx.greet)
    logger.debug(f"Registered commands: {', '.join(commands.command_names)}")
    return ctx


async def run_daemon(ctx: PokemContext) -> None:
    """
    运行守护进程：登录聊天网络，然后同时运行同步循环和HTTP服务器，直到被取消。

    Args:
        ctx: 应用上下文
    """
    daemon = ctx.config.daemon
    server = PokeServer(ctx.pipeline, ctx.nicknames, host=daemon.addr, port=daemon.port)

    await server.start()
    try:
        await ctx.channel.start()
    finally:
        logger.info("Shutting down...")
        await server.stop()
        await ctx.channel.stop()
