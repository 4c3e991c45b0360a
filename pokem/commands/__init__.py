"""聊天命令模块。

此模块提供命令基类、静态命令注册表和内置命令。
"""

from pokem.commands.base import Command, CommandContext
from pokem.commands.registry import CommandRegistry

__all__ = ["Command", "CommandContext", "CommandRegistry"]
