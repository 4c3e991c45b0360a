"""pokem工具函数模块。"""

from pokem.utils.helpers import ensure_dir, get_state_path, truncate_string

__all__ = ["ensure_dir", "get_state_path", "truncate_string"]
