"""向远程pokem守护进程发送poke的HTTP客户端。"""

from urllib.parse import quote

import httpx
from loguru import logger

from pokem.config.schema import ServerConfig
from pokem.poke.errors import SendFailed

PUBLIC_SERVER_URL = "https://pokem.jackson.dev"


def server_url(server: ServerConfig, room: str) -> str:
    """
    构建poke请求的URL。

    房间名称做百分号编码；没有协议前缀时补上"http://"。
    """
    base = server.url.rstrip("/")
    if server.port is not None:
        base = f"{base}:{server.port}"
    url = f"{base}/{quote(room, safe='')}"
    if not url.startswith(("http://", "https://")):
        url = f"http://{url}"
    return url


async def poke_server(
    server: ServerConfig,
    room: str,
    message: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """
    把消息作为请求体POST到守护进程。

    Args:
        server: 守护进程配置
        room: 房间ID、别名或昵称
        message: 消息正文
        transport: 可选的httpx传输层（测试时使用）

    Returns:
        守护进程的响应正文

    Raises:
        SendFailed: 请求失败或返回非2xx状态码
    """
    url = server_url(server, room)
    try:
        async with httpx.AsyncClient(timeout=30.0, transport=transport) as client:
            resp = await client.post(url, content=message.encode("utf-8"))
    except httpx.HTTPError as e:
        raise SendFailed(f"Request to {url} failed: {e}", room) from e

    if not resp.is_success:
        raise SendFailed(f"Server returned {resp.status_code}", room)
    logger.debug(f"Response: {resp.text!r}")
    return resp.text
