"""pokem命令行接口。"""

import asyncio
import re
import sys
from pathlib import Path
from typing import Mapping

import typer
from loguru import logger

from pokem import __logo__, __version__
from pokem.config.loader import load_config
from pokem.config.schema import Config, ServerConfig
from pokem.poke.errors import PokeError

app = typer.Typer(
    name="pokem",
    help=f"{__logo__} pokem - Poke a Matrix room from anywhere",
    no_args_is_help=True,
)

# 看起来像房间ID或别名的第一个参数
ROOM_LIKE_RE = re.compile(r"^.*:.*\..*")
DEFAULT_ROOM = "default"


def setup_logging(verbose: bool) -> None:
    """配置loguru的输出级别。"""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def select_room(
    room: str | None,
    words: list[str],
    nicknames: Mapping[str, str],
) -> tuple[str, list[str]]:
    """
    选择目标房间。

    依次尝试：--room（可以是昵称）、看起来像房间的第一个单词、
    作为昵称的第一个单词、昵称"default"。

    Args:
        room: --room选项的值
        words: 消息单词列表
        nicknames: 房间昵称表

    Returns:
        包含(房间, 剩余消息单词)的元组

    Raises:
        ValueError: 无法确定房间
    """
    if room:
        return nicknames.get(room, room), words
    if words:
        first = words[0]
        if ROOM_LIKE_RE.match(first):
            return first, words[1:]
        if first in nicknames:
            return nicknames[first], words[1:]
    if DEFAULT_ROOM in nicknames:
        return nicknames[DEFAULT_ROOM], words
    raise ValueError("No room specified")


def read_stdin() -> str:
    """读取管道输入，终端输入时返回空字符串。"""
    if sys.stdin is None or sys.stdin.isatty():
        return ""
    return sys.stdin.read().strip()


def _ensure_password(config: Config) -> None:
    """没有密码也没有保存的会话时，在终端提示输入密码。"""
    matrix = config.matrix
    if matrix is None or matrix.password:
        return
    if (config.state_path / "session.json").exists():
        return
    matrix.password = typer.prompt(f"Password for {matrix.username}", hide_input=True)


async def _send_direct(config: Config, room: str, message: str) -> None:
    """登录Matrix并直接发送一条消息。"""
    from pokem.app import build_context
    from pokem.channels.matrix import MatrixChannel

    channel = MatrixChannel(config.matrix, config.state_path)
    ctx = build_context(config, channel)
    await channel.connect()
    try:
        await ctx.pipeline.deliver(room, message)
    finally:
        await channel.stop()


async def _send(config: Config, room: str, message: str) -> bool:
    """
    发送一条消息。

    优先使用配置的远程守护进程，其次直接登录Matrix；
    两者都没有配置时使用公共实例。

    Returns:
        是否发送成功
    """
    from pokem.daemon.client import PUBLIC_SERVER_URL, poke_server

    servers = []
    if config.server:
        servers.append(config.server)
    elif config.matrix is None:
        logger.info(f"Sending request to {PUBLIC_SERVER_URL}")
        servers.append(ServerConfig(url=PUBLIC_SERVER_URL))

    for server in servers:
        try:
            await poke_server(server, room, message)
            logger.info("Successfully sent message")
            return True
        except PokeError as e:
            logger.error(f"Failed to send message: {e}")

    if config.matrix:
        logger.info("Running as a Matrix client")
        try:
            await _send_direct(config, room, message)
            return True
        except (PokeError, RuntimeError) as e:
            logger.error(f"Failed to send message: {e}")
    return False


# ============================================================================
# Commands
# ============================================================================


@app.command()
def send(
    message: list[str] = typer.Argument(None, help="Message to send"),
    room: str = typer.Option(None, "--room", "-r", help="Room ID, alias or nickname"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Poke a room with a message."""
    setup_logging(verbose)
    config = load_config(config_path)

    try:
        target, words = select_room(room, list(message or []), config.rooms)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    piped = read_stdin()
    if piped:
        words.append(piped)
    logger.debug(f"Room: {target!r}, Message: {words!r}")

    _ensure_password(config)
    if not asyncio.run(_send(config, target, " ".join(words))):
        typer.echo("Unable to send message", err=True)
        raise typer.Exit(1)


@app.command()
def daemon(
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Run the pokem daemon (chat commands and HTTP front door)."""
    from pokem.app import build_context, run_daemon
    from pokem.channels.matrix import MatrixChannel

    setup_logging(verbose)
    config = load_config(config_path)
    if config.matrix is None:
        typer.echo("Error: daemon mode requires a matrix section in the config", err=True)
        raise typer.Exit(1)

    _ensure_password(config)
    logger.info("Running in daemon mode")
    channel = MatrixChannel(config.matrix, config.state_path)
    ctx = build_context(config, channel)
    try:
        asyncio.run(run_daemon(ctx))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except RuntimeError as e:
        logger.error(f"Daemon stopped: {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """Show version."""
    typer.echo(f"{__logo__} pokem v{__version__}")


if __name__ == "__main__":
    app()
