"""HTTP守护进程和客户端模块。"""

from pokem.daemon.client import poke_server
from pokem.daemon.server import PokeServer

__all__ = ["PokeServer", "poke_server"]
