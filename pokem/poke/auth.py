"""入站poke的认证检查。"""

from typing import Mapping

from pokem.poke.errors import AuthRejected
from pokem.rooms.store import RoomConfig

# 可携带认证令牌的请求头，按优先级排列
AUTH_HEADERS = ("authentication", "auth")


def validate_authentication(
    config: RoomConfig,
    headers: Mapping[str, str],
    message: str,
    room_id: str | None = None,
) -> str:
    """
    校验认证令牌，并返回去除令牌后的消息。

    房间没有设置令牌时直接放行。否则接受以下两种方式之一：
    - 请求头authentication或auth与令牌完全一致（消息不变）
    - 消息以令牌开头（去除令牌及其后的空白，只去除一次）

    Args:
        config: 房间配置
        headers: 请求头（键为小写）
        message: 消息正文
        room_id: 房间ID，仅用于错误信息

    Returns:
        去除令牌后的消息

    Raises:
        AuthRejected: 令牌缺失或不匹配
    """
    if config.auth is None:
        return message

    token = ""
    for name in AUTH_HEADERS:
        if name in headers:
            token = headers[name]
            break
    if token == config.auth:
        return message

    # 允许令牌作为消息的第一个单词
    if not message.startswith(config.auth):
        raise AuthRejected(room_id)
    return message[len(config.auth):].lstrip()
