"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、SSE 心跳间隔以及任务字段长度限制等可配置常量。
"""

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("TASKMARKET_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "TASKMARKET_DB_PATH",
        str(_get_base_dir() / "sqlite" / "taskmarket.db"),
    )


# SSE 心跳间隔（秒）
SSE_HEARTBEAT_INTERVAL: int = int(
    os.environ.get("TASKMARKET_SSE_HEARTBEAT_INTERVAL", "15")
)

# 默认货币（加纳塞地）
DEFAULT_CURRENCY: str = os.environ.get("TASKMARKET_DEFAULT_CURRENCY", "GHS")

# 字段长度限制
TITLE_MAX_LENGTH: int = 200
DESCRIPTION_MAX_LENGTH: int = 2000
MESSAGE_MAX_LENGTH: int = 500
REASON_MAX_LENGTH: int = 1000
