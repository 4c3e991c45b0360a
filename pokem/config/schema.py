"""使用Pydantic的配置模式定义。

此模块定义了pokem的所有配置结构，包括：
- Matrix登录和命令配置
- 远程pokem守护进程（客户端模式）
- 本地守护进程的监听地址
- 房间昵称表

所有配置类都继承自Pydantic的BaseModel，提供类型验证。
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings


class MatrixConfig(BaseModel):
    """Matrix登录和消息配置。"""
    homeserver_url: str = ""  # Homeserver地址，例如"https://matrix.org"
    username: str = ""  # 用户名，例如"@pokem:matrix.org"
    password: str | None = None  # 密码，未设置时在命令行提示输入
    allow_list: str | None = None  # 允许发送命令/邀请的用户ID正则表达式
    room_size_limit: int | None = None  # 超过此人数的房间不发送消息
    state_dir: str | None = None  # 状态目录，默认~/.local/state/pokem
    command_prefix: str = "!pokem"  # 命令前缀
    format: str | None = None  # 默认消息格式：markdown | plain


class ServerConfig(BaseModel):
    """远程pokem守护进程配置（设置后CLI不再自己登录）。"""
    url: str  # 守护进程URL
    port: int | None = None  # 可选端口


class DaemonConfig(BaseModel):
    """守护进程监听配置。"""
    addr: str = "0.0.0.0"  # 监听地址
    port: int = 80  # 监听端口


class Config(BaseSettings):
    """
    pokem的根配置类。

    支持从环境变量加载配置（通过POKEM_前缀，嵌套字段使用__分隔）。
    """
    matrix: MatrixConfig | None = None  # Matrix配置
    server: ServerConfig | None = None  # 远程守护进程配置
    daemon: DaemonConfig = Field(default_factory=DaemonConfig)  # 守护进程配置
    rooms: dict[str, str] = Field(default_factory=dict)  # 房间昵称 -> 房间ID，"default"为默认房间

    @property
    def command_prefix(self) -> str:
        """获取命令前缀。"""
        return self.matrix.command_prefix if self.matrix else "!pokem"

    @property
    def state_path(self) -> Path:
        """
        获取展开后的状态目录路径。

        Returns:
            状态目录路径
        """
        if self.matrix and self.matrix.state_dir:
            return Path(self.matrix.state_dir).expanduser()
        from pokem.utils.helpers import get_state_path
        return get_state_path()

    model_config = ConfigDict(
        env_prefix="POKEM_",
        env_nested_delimiter="__"
    )
