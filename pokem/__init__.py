"""
pokem - 把通知消息投递到Matrix房间的小工具。

既可以作为Matrix客户端直接发送，也可以作为HTTP守护进程接收webhook请求。
"""

__version__ = "0.1.0"
__logo__ = "👉"
