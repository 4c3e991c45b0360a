"""通知投递模块。

此模块包含请求规范化、认证检查、消息格式化和投递流程。
"""

from pokem.poke.errors import (
    AuthRejected,
    JoinTimeout,
    MalformedRequest,
    PokeError,
    RoomNotFound,
    SendFailed,
    TagWriteFailure,
)
from pokem.poke.request import Notification, normalize

__all__ = [
    "AuthRejected",
    "JoinTimeout",
    "MalformedRequest",
    "Notification",
    "PokeError",
    "RoomNotFound",
    "SendFailed",
    "TagWriteFailure",
    "normalize",
]
