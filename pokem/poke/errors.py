"""投递流程中的错误类型。

所有错误都继承自PokeError，HTTP入口和聊天命令入口只需要捕获这一个基类。
"""


class PokeError(Exception):
    """一次投递失败的基类。"""

    def __init__(self, message: str, room_id: str | None = None):
        super().__init__(message)
        self.room_id = room_id


class MalformedRequest(PokeError):
    """请求体无法按UTF-8解码。"""


class RoomNotFound(PokeError):
    """无法把名称解析为已知房间。"""


class JoinTimeout(PokeError):
    """房间一直处于邀请状态，等待加入超时。"""


class AuthRejected(PokeError):
    """认证令牌不匹配。错误信息中不包含令牌细节。"""

    def __init__(self, room_id: str | None = None):
        super().__init__("Incorrect Authentication Token", room_id)


class SendFailed(PokeError):
    """聊天网络拒绝了发送请求。"""


class TagWriteFailure(PokeError):
    """房间标签写入或删除失败，房间配置可能处于不一致状态。"""
