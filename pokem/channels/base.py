"""聊天网络的基础渠道接口。

此模块定义了渠道实现必须继承的抽象基类，以及在渠道与核心逻辑之间
传递的数据结构。核心逻辑（解析、配置存储、投递流程、命令）只依赖这个接口，
不直接依赖具体的聊天网络客户端。
"""

import asyncio
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable

from loguru import logger

from pokem.poke.formatting import MARKDOWN, PLAIN, build_content

# 房间成员状态（与Matrix的membership取值一致）
MEMBERSHIP_JOIN = "join"
MEMBERSHIP_INVITE = "invite"


@dataclass
class RoomRef:
    """
    解析得到的房间句柄。

    只携带标识和解析时的成员状态快照；投递流程会通过渠道重新读取成员状态。
    """
    room_id: str  # 房间内部ID，例如"!abc:example.org"
    canonical_alias: str | None = None  # 主别名
    alt_aliases: list[str] = field(default_factory=list)  # 其他别名
    membership: str = MEMBERSHIP_JOIN  # 解析时的成员状态

    def has_alias(self, alias: str) -> bool:
        """检查主别名或任一其他别名是否与alias一致。"""
        return alias == self.canonical_alias or alias in self.alt_aliases


@dataclass
class InboundCommand:
    """
    从聊天网络收到的一条命令消息。
    """
    sender_id: str  # 发送者ID
    room_id: str  # 来源房间ID
    content: str  # 原始消息文本（包含命令前缀）
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: dict[str, Any] = field(default_factory=dict)


CommandCallback = Callable[[InboundCommand], Awaitable[str | None]]
JoinCallback = Callable[[str], Awaitable[None]]


class BaseChannel(ABC):
    """
    聊天渠道实现的抽象基类。

    实现类需要：
    - 连接到聊天网络并保持同步
    - 提供房间查询、成员状态和标签读写
    - 发送消息事件
    - 把收到的命令消息通过_handle_message()交给命令回调
    """

    name: str = "base"

    def __init__(self, config: Any):
        """
        初始化渠道。

        Args:
            config: 渠道特定的配置对象
        """
        self.config = config
        self._running = False
        self._on_command: CommandCallback | None = None
        self._on_join: JoinCallback | None = None
        self._tasks: set[asyncio.Task] = set()

    @abstractmethod
    async def start(self) -> None:
        """启动渠道并开始监听消息（长期运行）。"""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """停止渠道并清理资源。"""
        pass

    @abstractmethod
    def get_room(self, room_id: str) -> RoomRef | None:
        """
        根据内部ID查找已知房间（已加入或受邀）。

        Args:
            room_id: 房间内部ID

        Returns:
            房间句柄，未知时返回None
        """
        pass

    @abstractmethod
    async def joined_rooms(self) -> list[RoomRef]:
        """返回当前已加入的所有房间（包含别名信息）。"""
        pass

    @abstractmethod
    def membership(self, room_id: str) -> str | None:
        """返回当前成员状态："join"、"invite"，未知时返回None。"""
        pass

    @abstractmethod
    async def member_count(self, room_id: str) -> int:
        """返回房间中活跃成员的数量。"""
        pass

    @abstractmethod
    async def get_tags(self, room_id: str) -> list[str]:
        """读取房间的所有标签名称。"""
        pass

    @abstractmethod
    async def set_tag(self, room_id: str, tag: str) -> None:
        """添加房间标签，失败时抛出异常。"""
        pass

    @abstractmethod
    async def remove_tag(self, room_id: str, tag: str) -> None:
        """删除房间标签，失败时抛出异常。"""
        pass

    @abstractmethod
    async def send(self, room_id: str, content: dict[str, Any]) -> None:
        """
        发送m.room.message事件。

        Args:
            room_id: 目标房间ID
            content: 事件内容

        Raises:
            SendFailed: 聊天网络拒绝了消息
        """
        pass

    async def send_text(self, room_id: str, text: str, markdown: bool = False) -> None:
        """发送一条文本消息。"""
        await self.send(room_id, build_content(text, MARKDOWN if markdown else PLAIN))

    def set_handlers(
        self,
        on_command: CommandCallback | None = None,
        on_join: JoinCallback | None = None,
    ) -> None:
        """
        注册命令回调和加入房间回调。

        Args:
            on_command: 收到命令时调用，返回要回复的文本
            on_join: 成功加入房间后调用
        """
        self._on_command = on_command
        self._on_join = on_join

    def is_allowed(self, sender_id: str) -> bool:
        """
        检查发送者是否被允许使用此机器人。

        allow_list是一个正则表达式，未配置时允许所有人。

        Args:
            sender_id: 发送者的标识符

        Returns:
            如果允许返回True，否则返回False
        """
        pattern = getattr(self.config, "allow_list", None)
        if not pattern:
            return True
        return re.fullmatch(pattern, sender_id) is not None

    async def _handle_message(self, sender_id: str, room_id: str, content: str) -> None:
        """
        处理来自聊天网络的命令消息。

        检查权限后，把命令放到独立的任务中执行，
        避免阻塞同步循环（投递流程可能需要等待加入房间）。

        Args:
            sender_id: 发送者的标识符
            room_id: 房间ID
            content: 消息文本
        """
        if not self.is_allowed(sender_id):
            logger.warning(f"Access denied for sender {sender_id} in {room_id}")
            return
        if not self._on_command:
            return

        cmd = InboundCommand(sender_id=sender_id, room_id=room_id, content=content)
        self._spawn(self._run_command(cmd))

    async def _run_command(self, cmd: InboundCommand) -> None:
        """执行命令并把回复发送到来源房间。"""
        try:
            reply = await self._on_command(cmd)
            if reply:
                await self.send_text(cmd.room_id, reply, markdown=True)
        except Exception as e:
            logger.error(f"Error handling command in {cmd.room_id}: {e}")

    async def _handle_join(self, room_id: str) -> None:
        """加入房间后调用加入回调。"""
        if not self._on_join:
            return
        try:
            await self._on_join(room_id)
        except Exception as e:
            logger.error(f"Error greeting room {room_id}: {e}")

    def _spawn(self, coro: Awaitable[None]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def is_running(self) -> bool:
        """检查渠道是否正在运行。"""
        return self._running
