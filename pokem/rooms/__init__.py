"""房间模块。

此模块提供房间名称解析和基于房间标签的配置存储。
"""

from pokem.rooms.resolver import RoomResolver, resolve_topic
from pokem.rooms.store import RoomConfig, RoomConfigStore

__all__ = ["RoomConfig", "RoomConfigStore", "RoomResolver", "resolve_topic"]
