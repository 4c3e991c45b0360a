"""聊天命令的基础类。

此模块定义了命令系统的抽象基类，所有命令都必须继承自Command类。
每个命令接收(发送者, 原始文本, 来源房间)，返回要回复的文本。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


def has_prefix(text: str, prefix: str) -> bool:
    """判断文本是否以命令前缀开头（前缀后必须是空白或文本结尾）。"""
    if not text.startswith(prefix):
        return False
    rest = text[len(prefix):]
    return not rest or rest[0].isspace()


@dataclass
class CommandContext:
    """一次命令调用的上下文。"""
    sender_id: str  # 发送者ID
    text: str  # 原始消息文本（包含命令前缀）
    room_id: str  # 来源房间ID
    prefix: str = "!pokem"  # 命令前缀

    @property
    def args(self) -> list[str]:
        """
        去掉命令前缀后按空白拆分的参数列表。

        第一个元素是命令名称。
        """
        text = self.text
        if has_prefix(text, self.prefix):
            text = text[len(self.prefix):]
        return text.split()

    def arg(self, index: int) -> str:
        """返回第index个参数，不存在时返回空字符串。"""
        args = self.args
        return args[index] if index < len(args) else ""


class Command(ABC):
    """
    聊天命令的抽象基类。

    所有命令都必须实现name、description和execute方法。
    """

    usage: str = ""  # 参数说明，例如"<room> <message>"

    @property
    @abstractmethod
    def name(self) -> str:
        """命令名称，即前缀后的第一个单词。"""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """命令说明，用于帮助信息。"""
        pass

    @abstractmethod
    async def execute(self, ctx: CommandContext) -> str | None:
        """
        执行命令。

        Args:
            ctx: 命令上下文

        Returns:
            要回复到来源房间的文本，不需要回复时返回None
        """
        pass

    def help_line(self, prefix: str) -> str:
        """返回一行帮助信息。"""
        usage = f" {self.usage}" if self.usage else ""
        return f"`{prefix} {self.name}{usage}` - {self.description}"
