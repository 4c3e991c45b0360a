"""消息格式化：把文本转换为Matrix消息事件内容。

支持两种格式：
- markdown: 转换为org.matrix.custom.html格式的HTML正文
- plain: 纯文本
"""

import html
import re
from typing import Any

from loguru import logger

MARKDOWN = "markdown"
PLAIN = "plain"
SUPPORTED_FORMATS = (MARKDOWN, PLAIN)


def markdown_to_html(text: str) -> str:
    """
    将Markdown转换为Matrix可以显示的HTML格式。

    保护代码块和行内代码不被其他规则处理，
    支持标题、引用、链接、粗体、斜体、删除线、列表和换行。

    Args:
        text: Markdown格式的文本

    Returns:
        HTML格式的文本
    """
    if not text:
        return ""

    # 1. 提取并保护代码块
    code_blocks: list[str] = []
    def save_code_block(m: re.Match) -> str:
        code_blocks.append(m.group(1))
        return f"\x00CB{len(code_blocks) - 1}\x00"

    text = re.sub(r'```[\w]*\n?([\s\S]*?)```', save_code_block, text)

    # 2. 提取并保护行内代码
    inline_codes: list[str] = []
    def save_inline_code(m: re.Match) -> str:
        inline_codes.append(m.group(1))
        return f"\x00IC{len(inline_codes) - 1}\x00"

    text = re.sub(r'`([^`]+)`', save_inline_code, text)

    # 3. 转义HTML特殊字符
    text = html.escape(text, quote=False)

    # 4. 标题 # Title -> <hN>
    def heading(m: re.Match) -> str:
        level = len(m.group(1))
        return f"<h{level}>{m.group(2)}</h{level}>"

    text = re.sub(r'^(#{1,6})\s+(.+)$', heading, text, flags=re.MULTILINE)

    # 5. 引用块（">"已被转义）
    text = re.sub(r'^&gt;\s?(.*)$', r'<blockquote>\1</blockquote>', text, flags=re.MULTILINE)

    # 6. 链接 [text](url)
    text = re.sub(r'\[([^\]]+)\]\(([^)\s]+)\)', r'<a href="\2">\1</a>', text)

    # 7. 粗体 **text** 或 __text__
    text = re.sub(r'\*\*(.+?)\*\*', r'<strong>\1</strong>', text)
    text = re.sub(r'__(.+?)__', r'<strong>\1</strong>', text)

    # 8. 斜体 *text* 或 _text_（避免匹配单词内部，如some_var_name）
    text = re.sub(r'(?<![*\w])\*([^*\n]+)\*(?!\*)', r'<em>\1</em>', text)
    text = re.sub(r'(?<![a-zA-Z0-9])_([^_\n]+)_(?![a-zA-Z0-9])', r'<em>\1</em>', text)

    # 9. 删除线 ~~text~~
    text = re.sub(r'~~(.+?)~~', r'<del>\1</del>', text)

    # 10. 项目符号列表
    text = re.sub(r'^[-*]\s+', '• ', text, flags=re.MULTILINE)

    # 11. 恢复行内代码
    for i, code in enumerate(inline_codes):
        text = text.replace(f"\x00IC{i}\x00", f"<code>{html.escape(code, quote=False)}</code>")

    # 12. 换行（代码块恢复之前处理，代码块内保留原始换行）
    text = text.replace("\n", "<br/>")

    # 13. 恢复代码块
    for i, code in enumerate(code_blocks):
        text = text.replace(f"\x00CB{i}\x00", f"<pre><code>{html.escape(code, quote=False)}</code></pre>")

    return text


def resolve_format(header_format: str | None, default_format: str | None) -> str:
    """
    选择消息格式。

    优先使用请求头中的format，其次是部署默认值，最后是markdown。
    未知的格式会记录错误并回退为markdown。

    Args:
        header_format: 请求头中的format值
        default_format: 配置中的默认格式

    Returns:
        "markdown"或"plain"
    """
    fmt = header_format or default_format or MARKDOWN
    fmt = fmt.strip().lower()
    if fmt not in SUPPORTED_FORMATS:
        logger.error(f"Unknown format: {fmt}")
        return MARKDOWN
    return fmt


def build_content(text: str, fmt: str = MARKDOWN, mention_room: bool = False) -> dict[str, Any]:
    """
    构建m.room.message事件内容。

    Args:
        text: 消息文本
        fmt: "markdown"或"plain"
        mention_room: 是否附加@room提及

    Returns:
        Matrix事件内容字典
    """
    content: dict[str, Any] = {"msgtype": "m.text", "body": text}
    if fmt == MARKDOWN:
        content["format"] = "org.matrix.custom.html"
        content["formatted_body"] = markdown_to_html(text)
    if mention_room:
        content["m.mentions"] = {"room": True}
    return content
