"""聊天渠道模块。

此模块提供聊天网络的基础接口和Matrix实现。
"""

from pokem.channels.base import BaseChannel, InboundCommand, RoomRef

__all__ = ["BaseChannel", "InboundCommand", "RoomRef"]
