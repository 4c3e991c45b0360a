"""HTTP守护进程：接收poke请求并转交给投递流程。

任何路径、任何方法都会被接受：
- GET 返回网页表单
- 其他方法把路径作为主题，规范化请求后投递
"""

from typing import Mapping

from aiohttp import web
from loguru import logger

from pokem.poke.errors import PokeError
from pokem.poke.pipeline import DeliveryPipeline
from pokem.poke.request import normalize
from pokem.rooms.resolver import resolve_topic
from pokem.utils.helpers import truncate_string
from pokem.daemon.page import PAGE


def lowercase_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """把请求头键名转为小写，同名请求头只保留第一个。"""
    lowered: dict[str, str] = {}
    for key, value in headers.items():
        lowered.setdefault(key.lower(), value)
    return lowered


class PokeServer:
    """
    pokem的HTTP服务器。

    每个请求独立处理，多个请求可以并发投递。
    """

    def __init__(
        self,
        pipeline: DeliveryPipeline,
        nicknames: Mapping[str, str] | None = None,
        host: str = "0.0.0.0",
        port: int = 80,
    ):
        self.pipeline = pipeline
        self.nicknames = nicknames if nicknames is not None else {}
        self.host = host
        self.port = port
        self._runner: web.AppRunner | None = None

    def make_app(self) -> web.Application:
        """创建aiohttp应用。"""
        app = web.Application()
        app.router.add_route("GET", "/{topic:.*}", self.handle_page)
        app.router.add_route("*", "/{topic:.*}", self.handle_poke)
        return app

    async def start(self) -> None:
        """开始监听。"""
        self._runner = web.AppRunner(self.make_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info(f"Listening on http://{self.host}:{self.port}")

    async def stop(self) -> None:
        """停止监听并释放端口。"""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    async def handle_page(self, request: web.Request) -> web.Response:
        return web.Response(text=PAGE, content_type="text/html")

    async def handle_poke(self, request: web.Request) -> web.Response:
        """
        处理一次poke请求。

        成功（包括被发送策略拒绝）返回200 "OK"，任何投递错误返回404。
        """
        headers = lowercase_headers(request.headers)
        body = await request.read()
        try:
            notification = normalize(request.rel_url.raw_path, request.rel_url.query, headers, body)
            target, mention_room = resolve_topic(
                notification.topic, notification.priority, self.nicknames
            )
            logger.debug(
                f"Poke for {notification.topic} -> {target}: {truncate_string(notification.message, 80)}"
            )
            await self.pipeline.deliver(
                target,
                notification.render(),
                headers=headers,
                mention_room=mention_room,
            )
        except PokeError as e:
            logger.error(f"Failed to send message: {e}")
            return web.Response(status=404, text="Failed to send message")
        return web.Response(text="OK")
