"""投递流程：把一条消息送到房间。

状态依次为：
RESOLVING -> AWAITING_JOIN -> AUTHORIZING -> FORMATTING -> SENDING -> DELIVERED
任何一步失败都会进入FAILED，并抛出对应的PokeError。
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Mapping

from loguru import logger

from pokem.channels.base import MEMBERSHIP_INVITE, BaseChannel, RoomRef
from pokem.poke.auth import validate_authentication
from pokem.poke.errors import JoinTimeout, PokeError, RoomNotFound
from pokem.poke.formatting import build_content, resolve_format
from pokem.rooms.resolver import RoomResolver
from pokem.rooms.store import RoomConfigStore

# 总是允许发送的示例房间
EXAMPLE_ROOM_ID = "!JYrjsPjErpFSDdpwpI:jackson.dev"

# 等待接受邀请：从2秒开始每次翻倍，下一次等待超过60秒时放弃
JOIN_WAIT_INITIAL_S = 2
JOIN_WAIT_LIMIT_S = 60

Sleep = Callable[[float], Awaitable[None]]


class DeliveryState(str, Enum):
    """投递流程的状态。"""
    RESOLVING = "resolving"
    AWAITING_JOIN = "awaiting_join"
    AUTHORIZING = "authorizing"
    FORMATTING = "formatting"
    SENDING = "sending"
    DELIVERED = "delivered"
    FAILED = "failed"


@dataclass
class DeliveryReport:
    """一次成功投递的结果。"""
    room_id: str  # 实际目标房间ID
    state: DeliveryState = DeliveryState.DELIVERED
    sent: bool = True  # 被发送策略拒绝时为False（对调用方仍视为成功）
    waited_s: float = 0  # 等待加入房间的总时间


class SendPolicy:
    """
    决定是否允许向某个房间发送消息。

    - 示例房间总是允许
    - 设置了block标签的房间拒绝
    - 活跃成员数超过上限的房间拒绝（与block无关）
    """

    def __init__(
        self,
        channel: BaseChannel,
        store: RoomConfigStore,
        room_size_limit: int | None = None,
    ):
        self.channel = channel
        self.store = store
        self.room_size_limit = room_size_limit

    async def allows(self, room_id: str) -> bool:
        """
        检查是否可以向房间发送消息。

        Args:
            room_id: 房间ID

        Returns:
            允许返回True，否则返回False
        """
        if room_id == EXAMPLE_ROOM_ID:
            logger.info("Sending to example room")
            return True

        if await self.store.is_blocked(room_id):
            logger.warning(f"Blocked from sending messages to {room_id}")
            return False

        if self.room_size_limit is not None:
            try:
                count = await self.channel.member_count(room_id)
            except Exception as e:
                logger.warning(f"Failed to count members of {room_id}, refusing to send: {e}")
                return False
            if count > self.room_size_limit:
                logger.warning(
                    f"Room {room_id} has {count} members, over the limit of {self.room_size_limit}"
                )
                return False
        return True


class DeliveryPipeline:
    """
    投递流程。

    每次调用deliver()都是独立的，不持有任何锁；
    同一房间的并发投递由聊天网络自身保证顺序。
    """

    def __init__(
        self,
        channel: BaseChannel,
        resolver: RoomResolver,
        store: RoomConfigStore,
        policy: SendPolicy,
        default_format: str | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.channel = channel
        self.resolver = resolver
        self.store = store
        self.policy = policy
        self.default_format = default_format
        self._sleep = sleep

    async def deliver(
        self,
        target: str,
        message: str,
        headers: Mapping[str, str] | None = None,
        mention_room: bool = False,
    ) -> DeliveryReport:
        """
        把消息投递到目标房间。

        Args:
            target: 房间ID或别名
            message: 消息正文（可能以认证令牌开头）
            headers: 请求头（键为小写），用于认证和格式选择
            mention_room: 是否@整个房间

        Returns:
            投递结果

        Raises:
            PokeError: 任一步骤失败
        """
        headers = headers or {}
        state = DeliveryState.RESOLVING
        try:
            room = await self.resolver.resolve(target)
            if room is None:
                raise RoomNotFound(f"Failed to find room with name: {target}", target)

            state = DeliveryState.AWAITING_JOIN
            waited = await self.wait_for_join(room)

            state = DeliveryState.AUTHORIZING
            config = await self.store.get(room.room_id)
            text = validate_authentication(config, headers, message, room.room_id)

            state = DeliveryState.FORMATTING
            fmt = resolve_format(headers.get("format"), self.default_format)
            content = build_content(text, fmt, mention_room)

            state = DeliveryState.SENDING
            if not await self.policy.allows(room.room_id):
                logger.error(f"Failed to send message to {room.room_id}: refused by policy")
                return DeliveryReport(room_id=room.room_id, sent=False, waited_s=waited)
            await self.channel.send(room.room_id, content)
        except PokeError as e:
            logger.error(f"Delivery to {e.room_id or target} failed while {state.value}: {e}")
            raise

        logger.info(f"Delivered message to {room.room_id}")
        return DeliveryReport(room_id=room.room_id, waited_s=waited)

    async def wait_for_join(self, room: RoomRef) -> float:
        """
        等待房间邀请被接受。

        房间处于邀请状态时休眠后重试，等待时间从2秒开始翻倍，
        下一次等待超过60秒时放弃。

        Args:
            room: 目标房间

        Returns:
            总等待时间（秒）

        Raises:
            JoinTimeout: 等待超时
        """
        delay = JOIN_WAIT_INITIAL_S
        waited = 0.0
        while self.channel.membership(room.room_id) == MEMBERSHIP_INVITE:
            if delay > JOIN_WAIT_LIMIT_S:
                raise JoinTimeout(f"Failed to join room after {waited:.0f}s", room.room_id)
            logger.debug(f"Waiting {delay}s for invite to {room.room_id} to be accepted")
            await self._sleep(delay)
            waited += delay
            delay *= 2
        return waited
