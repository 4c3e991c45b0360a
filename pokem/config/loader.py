"""配置加载工具。

此模块提供了配置文件的加载和格式转换功能。
配置文件使用JSON格式，键名可以使用camelCase，
在Python代码中统一使用snake_case（符合Pydantic规范）。
房间昵称表的键是房间名称，不做转换。
"""

import json
from pathlib import Path
from typing import Any

from loguru import logger

from pokem.config.schema import Config

# 键名保持原样的字段（用户自定义的名称）
VERBATIM_KEYS = {"rooms"}


def get_config_path() -> Path:
    """
    获取默认配置文件路径。

    Returns:
        配置文件路径（~/.config/pokem/config.json）
    """
    return Path.home() / ".config" / "pokem" / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    从文件加载配置或创建默认配置。

    如果配置文件不存在或加载失败，会返回默认配置对象。

    Args:
        config_path: 可选的配置文件路径，如果未提供则使用默认路径

    Returns:
        加载的配置对象
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            with open(path) as f:
                data = json.load(f)
            return Config.model_validate(convert_keys(data))
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning(f"Failed to load config from {path}: {e}")
            logger.warning("Using default configuration.")
    else:
        logger.debug(f"No config file at {path}, using defaults")

    return Config()


def convert_keys(data: Any) -> Any:
    """
    将camelCase键名转换为snake_case（用于Pydantic）。

    递归处理字典和列表，VERBATIM_KEYS下的字典键保持原样。

    Args:
        data: 要转换的数据（可以是字典、列表或其他类型）

    Returns:
        转换后的数据
    """
    if isinstance(data, dict):
        return {
            camel_to_snake(k): v if camel_to_snake(k) in VERBATIM_KEYS else convert_keys(v)
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """
    将camelCase转换为snake_case。

    例如：roomSizeLimit -> room_size_limit
    """
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)
