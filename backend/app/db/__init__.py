"""
数据库模块
提供数据库连接、初始化和默认数据
"""

from .init_db import (
    init_db, get_engine, create_tables, create_default_data,
    create_default_list, ensure_demo_friends,
    DEFAULT_LIST_TITLE, DEFAULT_LIST_DESCRIPTION, DEMO_FRIENDS
)

__all__ = [
    "init_db",
    "get_engine",
    "create_tables",
    "create_default_data",
    "create_default_list",
    "ensure_demo_friends",
    "DEFAULT_LIST_TITLE",
    "DEFAULT_LIST_DESCRIPTION",
    "DEMO_FRIENDS"
]
