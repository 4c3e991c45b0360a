"""
本地直接启动 pokem 的入口脚本。

用法示例（在项目根目录运行）：

    python run.py send ops "磁盘空间不足"
    echo "构建失败" | python run.py send --room '#ci:matrix.org'
    python run.py daemon --config ~/.config/pokem/config.json
"""

from pokem.cli.commands import app


if __name__ == "__main__":
    app()
