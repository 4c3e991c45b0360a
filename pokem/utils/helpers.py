"""pokem的实用工具函数。

此模块提供了路径管理和字符串处理等辅助函数。
"""

import os
from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """
    确保目录存在，如果不存在则创建。

    Args:
        path: 目录路径

    Returns:
        目录路径（确保已存在）
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_state_path() -> Path:
    """
    获取pokem状态目录路径（$XDG_STATE_HOME/pokem，默认~/.local/state/pokem）。

    Returns:
        状态目录路径
    """
    base = os.environ.get("XDG_STATE_HOME")
    root = Path(base) if base else Path.home() / ".local" / "state"
    return root / "pokem"


def truncate_string(s: str, max_len: int = 100, suffix: str = "...") -> str:
    """
    截断字符串到最大长度，如果被截断则添加后缀。

    Args:
        s: 要截断的字符串
        max_len: 最大长度，默认为100
        suffix: 截断时添加的后缀，默认为"..."

    Returns:
        截断后的字符串
    """
    if len(s) <= max_len:
        return s
    return s[: max_len - len(suffix)] + suffix
