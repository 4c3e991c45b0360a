"""房间配置存储。

每个房间的配置保存在房间标签中，不需要单独的数据库：
- dev.pokem.block: 禁止向该房间发送消息
- dev.pokem.auth.<token>: 发送消息所需的认证令牌
- dev.pokem.pass.<token>: 旧格式的令牌，读取时会自动迁移为auth格式

set()由多个互相独立的标签操作组成，不是原子的。中途失败时可能残留旧标签，
下一次get()会读取到第一个令牌并记录警告，再次set()即可修复。
"""

from dataclasses import dataclass
from typing import Protocol

from loguru import logger

from pokem.poke.errors import TagWriteFailure

TAG_NAMESPACE = "dev.pokem"
BLOCK_TAG = f"{TAG_NAMESPACE}.block"
AUTH_PREFIX = f"{TAG_NAMESPACE}.auth."
LEGACY_AUTH_PREFIX = f"{TAG_NAMESPACE}.pass."


@dataclass
class RoomConfig:
    """单个房间的配置。"""
    block: bool = False  # 是否禁止发送消息
    auth: str | None = None  # 认证令牌


class TagStorage(Protocol):
    """房间标签的底层读写接口（由渠道实现）。"""

    async def get_tags(self, room_id: str) -> list[str]: ...

    async def set_tag(self, room_id: str, tag: str) -> None: ...

    async def remove_tag(self, room_id: str, tag: str) -> None: ...


class RoomConfigStore:
    """
    基于房间标签的配置仓库。

    提供get/set/migrate三个操作，隐藏标签编码细节。
    """

    def __init__(self, tags: TagStorage):
        self.tags = tags

    async def get(self, room_id: str) -> RoomConfig:
        """
        读取房间配置。

        读取永远不会失败：标签读取失败时返回默认配置。
        如果发现旧格式的令牌，会立即写回新格式。

        Args:
            room_id: 房间ID

        Returns:
            房间配置
        """
        config, should_migrate = await self._read(room_id)
        if should_migrate:
            logger.info(f"Migrating legacy auth tag for room {room_id}")
            try:
                await self.set(room_id, config)
            except TagWriteFailure as e:
                logger.error(f"Failed to migrate room config for {room_id}: {e}")
        return config

    async def set(self, room_id: str, config: RoomConfig) -> None:
        """
        把配置写入房间标签。

        先切换block标签，再删除所有与目标令牌不一致的auth/pass标签，
        最后在需要时添加目标令牌标签。重复执行结果相同。

        Args:
            room_id: 房间ID
            config: 目标配置

        Raises:
            TagWriteFailure: 任一标签操作失败
        """
        current = await self._list_tags(room_id)

        if config.block and BLOCK_TAG not in current:
            await self._write(room_id, BLOCK_TAG, add=True)
        elif not config.block and BLOCK_TAG in current:
            await self._write(room_id, BLOCK_TAG, add=False)

        placed = False
        for tag in current:
            if tag.startswith(LEGACY_AUTH_PREFIX):
                # 旧格式，总是删除，下面会用新格式替换
                await self._write(room_id, tag, add=False)
            elif tag.startswith(AUTH_PREFIX):
                if config.auth is not None and tag[len(AUTH_PREFIX):] == config.auth and not placed:
                    placed = True
                else:
                    await self._write(room_id, tag, add=False)

        if config.auth is not None and not placed:
            await self._write(room_id, f"{AUTH_PREFIX}{config.auth}", add=True)

    async def migrate(self, room_id: str) -> RoomConfig:
        """
        重写房间标签，清除残留或旧格式的标签。

        Args:
            room_id: 房间ID

        Returns:
            迁移后的配置
        """
        config, _ = await self._read(room_id)
        await self.set(room_id, config)
        return config

    async def is_blocked(self, room_id: str) -> bool:
        """检查房间是否设置了block标签（不触发迁移）。"""
        return BLOCK_TAG in await self._list_tags(room_id)

    async def _read(self, room_id: str) -> tuple[RoomConfig, bool]:
        config = RoomConfig()
        should_migrate = False
        for tag in await self._list_tags(room_id):
            if tag == BLOCK_TAG:
                config.block = True
                continue
            if tag.startswith(AUTH_PREFIX):
                token = tag[len(AUTH_PREFIX):]
            elif tag.startswith(LEGACY_AUTH_PREFIX):
                token = tag[len(LEGACY_AUTH_PREFIX):]
                should_migrate = True
            else:
                continue
            if config.auth is not None:
                # 只允许一个令牌，多半是之前修改令牌时删除失败
                if token != config.auth:
                    logger.warning(f"Multiple Auth Tokens set for room: {room_id}")
                continue
            config.auth = token
        return config, should_migrate

    async def _list_tags(self, room_id: str) -> list[str]:
        try:
            return list(await self.tags.get_tags(room_id))
        except Exception as e:
            logger.warning(f"Failed to read tags for room {room_id}: {e}")
            return []

    async def _write(self, room_id: str, tag: str, add: bool) -> None:
        try:
            if add:
                await self.tags.set_tag(room_id, tag)
            else:
                await self.tags.remove_tag(room_id, tag)
        except Exception as e:
            action = "add" if add else "remove"
            logger.error(f"Failed to {action} tag {tag} on room {room_id}: {e}")
            raise TagWriteFailure(f"Failed to {action} room tag {tag}", room_id) from e
