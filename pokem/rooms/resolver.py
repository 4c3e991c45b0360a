"""房间解析：把用户提供的名称转换为房间句柄。

支持三种写法：
- 房间内部ID，例如"!abc:example.org"
- 房间别名，例如"#ops:example.org"（可以省略开头的"#"）
- 配置中的房间昵称，例如"ops"（仅用于通知主题）
"""

import re
from typing import Mapping

from loguru import logger

from pokem.channels.base import BaseChannel, RoomRef

ROOM_ID_RE = re.compile(r"^![^:\s]+:\S+$")
USER_ID_RE = re.compile(r"^@.*:.*\..*")
ROOM_ALIAS_RE = re.compile(r"^#.*:.*\..*")

# 优先级高于此值的通知视为紧急
URGENT_PRIORITY_THRESHOLD = 3
URGENT_SUFFIX = "-urgent"


def is_room_id(name: str) -> bool:
    """检查名称是否是语法正确的房间内部ID。"""
    return ROOM_ID_RE.match(name) is not None


class RoomResolver:
    """
    把名称解析为已知房间。

    别名查找会扫描当前所有已加入的房间，不做缓存，
    保证房间别名变化后立即生效。
    """

    def __init__(self, channel: BaseChannel):
        self.channel = channel

    async def resolve(self, name: str) -> RoomRef | None:
        """
        解析房间名称。

        依次尝试：房间内部ID、拒绝用户ID、补全为别名后扫描已加入的房间。

        Args:
            name: 房间ID或别名

        Returns:
            房间句柄，找不到时返回None
        """
        if not name:
            return None

        if is_room_id(name):
            return self.channel.get_room(name)

        # "#@user:example.org"是合法的房间别名，但看起来像用户名的名称一律忽略
        if USER_ID_RE.match(name):
            logger.warning(f"Refusing to resolve user id as a room: {name}")
            return None

        # 允许省略"#"，在URL中写"#"很麻烦
        alias = name if name.startswith("#") else f"#{name}"
        if not ROOM_ALIAS_RE.match(alias):
            logger.error(f"Failed to find room: {alias}")
            return None

        for room in await self.channel.joined_rooms():
            if room.has_alias(alias):
                return room
        return None


def is_urgent(priority: int | None) -> bool:
    """检查优先级是否属于紧急通知。"""
    return priority is not None and priority > URGENT_PRIORITY_THRESHOLD


def resolve_topic(
    topic: str,
    priority: int | None,
    nicknames: Mapping[str, str] | None,
) -> tuple[str, bool]:
    """
    通过配置中的房间昵称表转换通知主题。

    紧急通知优先发送到"<topic>-urgent"房间；如果没有配置紧急房间，
    则发送到普通房间并@整个房间，保证紧急通知仍然能提醒到所有人。

    Args:
        topic: 通知主题
        priority: 通知优先级
        nicknames: 昵称到房间ID的映射

    Returns:
        包含(目标房间名称, 是否@整个房间)的元组
    """
    nicknames = nicknames or {}
    urgent = is_urgent(priority)

    if urgent:
        urgent_room = nicknames.get(f"{topic}{URGENT_SUFFIX}")
        if urgent_room:
            return urgent_room, False
        # 没有紧急房间，@整个房间
        return nicknames.get(topic, topic), True

    return nicknames.get(topic, topic), False
