"""使用matrix-nio实现的Matrix渠道。

此模块实现了Matrix聊天渠道，支持：
- 密码登录，并把会话保存到状态目录，重启后复用
- 收到邀请后自动加入房间（邀请者需要通过allow_list）
- 识别带命令前缀的文本消息
- 通过客户端-服务器API读写房间标签（用作房间配置存储）
"""

import asyncio
import json
import time
from pathlib import Path
from typing import Any
from urllib.parse import quote

import httpx
from loguru import logger
from nio import (
    AsyncClient,
    InviteMemberEvent,
    JoinResponse,
    LoginResponse,
    MatrixRoom,
    RoomMessageText,
    RoomSendResponse,
    SyncResponse,
    WhoamiResponse,
)

from pokem.channels.base import MEMBERSHIP_INVITE, MEMBERSHIP_JOIN, BaseChannel, RoomRef
from pokem.commands.base import has_prefix
from pokem.config.schema import MatrixConfig
from pokem.poke.errors import SendFailed
from pokem.utils.helpers import ensure_dir

CLIENT_API_PATH = "/_matrix/client/v3"
SYNC_TIMEOUT_MS = 30000
RESTART_DELAY_S = 5
DEVICE_NAME = "Pok'em"


class MatrixChannel(BaseChannel):
    """
    Matrix渠道。

    使用matrix-nio保持同步，使用httpx调用nio没有封装的接口（房间标签、别名状态）。
    """

    name = "matrix"

    def __init__(self, config: MatrixConfig, state_path: Path):
        super().__init__(config)
        self.config: MatrixConfig = config
        self.state_path = state_path
        self._client: AsyncClient | None = None
        self._http: httpx.AsyncClient | None = None
        self._connected = False
        self._started_ms = 0

    @property
    def session_file(self) -> Path:
        return self.state_path / "session.json"

    @property
    def user_id(self) -> str:
        return self._client.user_id if self._client else self.config.username

    async def connect(self) -> None:
        """
        登录并完成首次同步。

        首次同步之后才注册消息回调，避免处理历史消息；
        首次同步时已经存在的邀请会在这里接受。
        """
        if self._connected:
            return
        if not self.config.homeserver_url or not self.config.username:
            raise RuntimeError("Matrix homeserver_url and username must be configured")

        self._client = AsyncClient(self.config.homeserver_url, self.config.username)
        self._http = httpx.AsyncClient(timeout=30.0)
        await self._login()

        self._started_ms = int(time.time() * 1000)
        resp = await self._client.sync(timeout=SYNC_TIMEOUT_MS, full_state=True)
        if not isinstance(resp, SyncResponse):
            raise RuntimeError(f"Initial Matrix sync failed: {resp}")

        for room_id in list(self._client.invited_rooms):
            await self._join(room_id)

        self._client.add_event_callback(self._on_message, RoomMessageText)
        self._client.add_event_callback(self._on_invite, InviteMemberEvent)
        self._connected = True
        logger.info(f"Matrix client ready as {self.user_id}, {len(self._client.rooms)} rooms joined")

    async def start(self) -> None:
        """
        启动Matrix同步循环。

        同步循环意外退出时会记录错误并在几秒后重新开始。
        """
        await self.connect()
        self._running = True
        logger.info("The client is ready! Listening to new messages...")

        while self._running:
            try:
                await self._client.sync_forever(timeout=SYNC_TIMEOUT_MS)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Matrix sync restarting after it exited with error: {e}")
                if self._running:
                    await asyncio.sleep(RESTART_DELAY_S)

    async def stop(self) -> None:
        """停止同步循环并关闭连接。"""
        self._running = False
        for task in list(self._tasks):
            task.cancel()
        if self._client:
            try:
                await self._client.close()
            except Exception as e:
                logger.warning(f"Error during Matrix client close: {e}")
            self._client = None
        if self._http:
            await self._http.aclose()
            self._http = None
        self._connected = False

    # ── 房间查询 ─────────────────────────────────────────────

    def get_room(self, room_id: str) -> RoomRef | None:
        if not self._client:
            return None
        room = self._client.rooms.get(room_id)
        if room:
            return self._to_ref(room, MEMBERSHIP_JOIN)
        room = self._client.invited_rooms.get(room_id)
        if room:
            return self._to_ref(room, MEMBERSHIP_INVITE)
        return None

    async def joined_rooms(self) -> list[RoomRef]:
        """返回所有已加入的房间，并读取每个房间的其他别名。"""
        if not self._client:
            return []
        rooms = list(self._client.rooms.values())
        alt_aliases = await asyncio.gather(*(self._alt_aliases(r.room_id) for r in rooms))
        return [
            self._to_ref(room, MEMBERSHIP_JOIN, aliases)
            for room, aliases in zip(rooms, alt_aliases)
        ]

    def membership(self, room_id: str) -> str | None:
        if not self._client:
            return None
        if room_id in self._client.rooms:
            return MEMBERSHIP_JOIN
        if room_id in self._client.invited_rooms:
            return MEMBERSHIP_INVITE
        return None

    async def member_count(self, room_id: str) -> int:
        room = self._client.rooms.get(room_id) if self._client else None
        return room.joined_count if room else 0

    # ── 房间标签 ─────────────────────────────────────────────

    async def get_tags(self, room_id: str) -> list[str]:
        resp = await self._api("GET", self._tags_path(room_id))
        return list(resp.json().get("tags", {}).keys())

    async def set_tag(self, room_id: str, tag: str) -> None:
        await self._api("PUT", f"{self._tags_path(room_id)}/{quote(tag, safe='')}", json={})

    async def remove_tag(self, room_id: str, tag: str) -> None:
        await self._api("DELETE", f"{self._tags_path(room_id)}/{quote(tag, safe='')}")

    # ── 发送 ─────────────────────────────────────────────────

    async def send(self, room_id: str, content: dict[str, Any]) -> None:
        if not self._client:
            raise SendFailed("Matrix client not running", room_id)
        resp = await self._client.room_send(
            room_id=room_id,
            message_type="m.room.message",
            content=content,
            ignore_unverified_devices=True,
        )
        if not isinstance(resp, RoomSendResponse):
            raise SendFailed(f"Failed to send message: {resp}", room_id)

    # ── 内部实现 ─────────────────────────────────────────────

    async def _login(self) -> None:
        """优先恢复保存的会话，失败时使用密码登录。"""
        if self._restore_session():
            resp = await self._client.whoami()
            if isinstance(resp, WhoamiResponse):
                logger.info(f"Session restored from {self.session_file} for {resp.user_id}")
                return
            logger.warning(f"Restored token is invalid for {self.config.username}, logging in again")
            self._client.access_token = ""

        if not self.config.password:
            raise RuntimeError("Matrix password not configured and no saved session found")

        resp = await self._client.login(self.config.password, device_name=DEVICE_NAME)
        if not isinstance(resp, LoginResponse):
            raise RuntimeError(f"Matrix login failed: {resp}")
        logger.info(f"Logged in as {resp.user_id}")
        self._save_session(resp)

    def _restore_session(self) -> bool:
        if not self.session_file.exists():
            return False
        try:
            data = json.loads(self.session_file.read_text())
            self._client.restore_login(
                user_id=data["user_id"],
                device_id=data["device_id"],
                access_token=data["access_token"],
            )
            return True
        except (ValueError, KeyError) as e:
            logger.warning(f"Ignoring unreadable session file {self.session_file}: {e}")
            return False

    def _save_session(self, resp: LoginResponse) -> None:
        ensure_dir(self.state_path)
        self.session_file.write_text(json.dumps({
            "user_id": resp.user_id,
            "device_id": resp.device_id,
            "access_token": resp.access_token,
        }))
        self.session_file.chmod(0o600)

    async def _api(self, method: str, path: str, json: Any = None) -> httpx.Response:
        """调用Matrix客户端-服务器API，非2xx响应抛出httpx.HTTPStatusError。"""
        if not self._client or not self._http:
            raise RuntimeError("Matrix client not connected")
        url = f"{self.config.homeserver_url.rstrip('/')}{CLIENT_API_PATH}{path}"
        resp = await self._http.request(
            method,
            url,
            json=json,
            headers={"Authorization": f"Bearer {self._client.access_token}"},
        )
        resp.raise_for_status()
        return resp

    def _tags_path(self, room_id: str) -> str:
        return f"/user/{quote(self.user_id, safe='')}/rooms/{quote(room_id, safe='')}/tags"

    async def _alt_aliases(self, room_id: str) -> list[str]:
        try:
            resp = await self._api(
                "GET", f"/rooms/{quote(room_id, safe='')}/state/m.room.canonical_alias"
            )
        except httpx.HTTPStatusError:
            # 没有设置别名的房间返回404
            return []
        except httpx.HTTPError as e:
            logger.debug(f"Failed to read aliases of {room_id}: {e}")
            return []
        return list(resp.json().get("alt_aliases") or [])

    @staticmethod
    def _to_ref(room: MatrixRoom, membership: str, alt_aliases: list[str] | None = None) -> RoomRef:
        return RoomRef(
            room_id=room.room_id,
            canonical_alias=getattr(room, "canonical_alias", None),
            alt_aliases=alt_aliases or [],
            membership=membership,
        )

    async def _join(self, room_id: str) -> None:
        resp = await self._client.join(room_id)
        if not isinstance(resp, JoinResponse):
            logger.error(f"Failed to join room {room_id}: {resp}")
            return
        logger.info(f"Joined room: {room_id}")
        self._spawn(self._handle_join(room_id))

    async def _on_invite(self, room: MatrixRoom, event: InviteMemberEvent) -> None:
        if event.state_key != self.user_id or event.membership != "invite":
            return
        if not self.is_allowed(event.sender):
            logger.warning(f"Ignoring invite to {room.room_id} from {event.sender}")
            return
        await self._join(room.room_id)

    async def _on_message(self, room: MatrixRoom, event: RoomMessageText) -> None:
        if event.sender == self.user_id:
            return
        # 忽略登录之前的消息
        if event.server_timestamp < self._started_ms:
            return
        if not has_prefix(event.body, self.config.command_prefix):
            return
        limit = self.config.room_size_limit
        if limit is not None and room.joined_count > limit:
            logger.debug(f"Ignoring command in {room.room_id}: room over size limit")
            return
        await self._handle_message(event.sender, room.room_id, event.body)
