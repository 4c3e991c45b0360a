"""命令注册表。

命令在启动时一次性注册到一个静态表中，按命令名称分发，
不需要连接聊天网络即可枚举和测试。
"""

from loguru import logger

from pokem.channels.base import InboundCommand
from pokem.commands.base import Command, CommandContext, has_prefix
from pokem.poke.errors import PokeError


class CommandRegistry:
    """
    聊天命令注册表。

    支持注册命令、按名称获取命令，以及把收到的消息分发给对应命令。
    """

    def __init__(self, prefix: str = "!pokem"):
        self.prefix = prefix
        self._commands: dict[str, Command] = {}

    def register(self, command: Command) -> None:
        """
        注册一个命令。

        Args:
            command: 要注册的命令对象
        """
        self._commands[command.name] = command

    def get(self, name: str) -> Command | None:
        """根据名称获取命令。"""
        return self._commands.get(name)

    def matches(self, text: str) -> bool:
        """检查文本是否以命令前缀开头。"""
        return has_prefix(text, self.prefix)

    async def dispatch(self, msg: InboundCommand) -> str | None:
        """
        把收到的消息分发给对应的命令。

        Args:
            msg: 收到的命令消息

        Returns:
            要回复的文本，没有回复时返回None
        """
        if not self.matches(msg.content):
            return None

        ctx = CommandContext(
            sender_id=msg.sender_id,
            text=msg.content,
            room_id=msg.room_id,
            prefix=self.prefix,
        )
        name = ctx.arg(0).lower()
        command = self._commands.get(name)
        if not command:
            return f"Unknown command '{name}'. Send `{self.prefix} help` to see available commands."

        logger.debug(f"Running command {name} from {msg.sender_id} in {msg.room_id}")
        try:
            return await command.execute(ctx)
        except PokeError as e:
            logger.error(f"Command {name} failed in {msg.room_id}: {e}")
            return f"ERROR: {e}"

    @property
    def commands(self) -> list[Command]:
        """按注册顺序返回所有命令。"""
        return list(self._commands.values())

    @property
    def command_names(self) -> list[str]:
        """获取所有已注册命令的名称列表。"""
        return list(self._commands.keys())

    def __len__(self) -> int:
        return len(self._commands)

    def __contains__(self, name: str) -> bool:
        return name in self._commands
