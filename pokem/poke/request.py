"""入站请求的规范化。

此模块把一次HTTP调用（JSON请求体、查询参数、请求头或原始请求体）
统一转换为一个Notification记录，并负责渲染最终的消息文本：
- 标题加粗并放在消息前面
- 标签按emoji短代码转换为表情并放在最前面
"""

import json
from dataclasses import dataclass
from typing import Any, Mapping
from urllib.parse import unquote

import emoji
from loguru import logger

from pokem.poke.errors import MalformedRequest

DEFAULT_PRIORITY = 3
MIN_PRIORITY = 1
MAX_PRIORITY = 5

# 优先级名称到数值的映射（与ntfy保持一致）
PRIORITY_NAMES = {
    "min": 1,
    "low": 2,
    "default": 3,
    "high": 4,
    "urgent": 5,
    "max": 5,
}

# 每个字段可接受的请求头名称，按优先级排列
TITLE_HEADERS = ("x-title", "title", "ti", "t")
MESSAGE_HEADERS = ("x-message", "message", "m")
PRIORITY_HEADERS = ("x-priority", "priority", "prio", "p")
TAGS_HEADERS = ("x-tags", "tags", "tag", "ta")


@dataclass(frozen=True)
class Notification:
    """
    一次poke请求的规范化结果。

    每次调用只构建一次，构建后不可修改。
    """
    topic: str  # 目标房间名称（来自URL路径）
    message: str  # 消息正文
    title: str | None = None  # 可选标题
    priority: int | None = None  # 可选优先级，1..5
    tags: tuple[str, ...] | None = None  # 可选标签（emoji短代码）

    def render(self) -> str:
        """
        渲染最终发送的消息文本（认证检查之前完成）。

        Returns:
            加上标题和表情后的消息文本
        """
        text = self.message
        if self.title:
            text = f"**{self.title}**\n\n{text}"
        glyphs = tags_to_emoji(self.tags or ())
        if glyphs:
            text = f"{glyphs} {text}"
        return text


def parse_priority(value: Any) -> int:
    """
    解析优先级。

    数字会被限制在1..5之间，否则按名称映射，无法识别时回退为3。

    Args:
        value: 原始优先级（整数或字符串）

    Returns:
        1..5之间的优先级
    """
    if isinstance(value, bool):
        return DEFAULT_PRIORITY
    if isinstance(value, int):
        return max(MIN_PRIORITY, min(MAX_PRIORITY, value))
    text = str(value).strip()
    try:
        return max(MIN_PRIORITY, min(MAX_PRIORITY, int(text)))
    except ValueError:
        return PRIORITY_NAMES.get(text.lower(), DEFAULT_PRIORITY)


def split_tags(value: Any) -> tuple[str, ...]:
    """把逗号分隔的字符串或列表转换为标签元组。"""
    items = value.split(",") if isinstance(value, str) else list(value)
    return tuple(str(t).strip() for t in items if str(t).strip())


def tags_to_emoji(tags: tuple[str, ...] | list[str]) -> str:
    """
    把标签转换为emoji并拼接。

    无法识别的短代码会被静默丢弃。

    Args:
        tags: 标签列表，例如("warning", "skull")

    Returns:
        拼接后的表情字符串，可能为空
    """
    glyphs = []
    for tag in tags:
        code = f":{tag.strip(':')}:"
        glyph = emoji.emojize(code, language="alias")
        # 部分替换（例如"warning:junk"）也不算识别成功
        if emoji.is_emoji(glyph):
            glyphs.append(glyph)
    return "".join(glyphs)


def topic_from_path(path: str) -> str:
    """从URL路径中提取主题（去掉开头的斜杠并做百分号解码）。"""
    return unquote(path.lstrip("/"))


def normalize(
    path: str,
    query: Mapping[str, str],
    headers: Mapping[str, str],
    body: bytes,
) -> Notification:
    """
    把一次入站调用转换为Notification。

    如果请求体是包含message字段的JSON对象，直接使用其字段；
    否则每个字段依次从查询参数、请求头、（仅message）原始请求体中获取。
    主题总是来自URL路径。

    Args:
        path: 原始URL路径（未解码）
        query: 查询参数
        headers: 请求头
        body: 原始请求体

    Returns:
        规范化的通知

    Raises:
        MalformedRequest: 请求体不是有效的UTF-8
    """
    topic = topic_from_path(path)
    try:
        body_str = body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedRequest(f"error while decoding UTF-8: {e}", topic) from e

    from_json = _from_json(topic, body_str)
    if from_json is not None:
        return from_json

    query_params: dict[str, str] = {}
    for key, value in query.items():
        query_params.setdefault(key.lower(), value)
    lowered = {k.lower(): v for k, v in headers.items()}

    title = query_params.get("title") or _first_header(lowered, TITLE_HEADERS)
    message = query_params.get("message")
    if message is None:
        message = _first_header(lowered, MESSAGE_HEADERS)
    if message is None:
        message = body_str

    raw_priority = query_params.get("priority") or _first_header(lowered, PRIORITY_HEADERS)
    raw_tags = query_params.get("tags") or _first_header(lowered, TAGS_HEADERS)

    return Notification(
        topic=topic,
        message=message,
        title=title or None,
        priority=parse_priority(raw_priority) if raw_priority is not None else None,
        tags=split_tags(raw_tags) if raw_tags is not None else None,
    )


def _from_json(topic: str, body_str: str) -> Notification | None:
    """尝试把请求体解析为JSON格式的通知。"""
    try:
        data = json.loads(body_str)
    except ValueError:
        return None
    if not isinstance(data, dict) or not isinstance(data.get("message"), str):
        return None

    priority = data.get("priority")
    tags = data.get("tags")
    title = data.get("title")
    # 字段类型不对时按非JSON请求处理
    if title is not None and not isinstance(title, str):
        return None
    if priority is not None and (isinstance(priority, bool) or not isinstance(priority, (int, str))):
        return None
    if tags is not None and not (
        isinstance(tags, str) or (isinstance(tags, list) and all(isinstance(t, str) for t in tags))
    ):
        return None

    logger.debug(f"Parsed JSON poke for topic {topic}")
    return Notification(
        topic=topic,
        message=data["message"],
        title=title or None,
        priority=parse_priority(priority) if priority is not None else None,
        tags=split_tags(tags) if tags else None,
    )


def _first_header(headers: Mapping[str, str], names: tuple[str, ...]) -> str | None:
    for name in names:
        if name in headers:
            return headers[name]
    return None
