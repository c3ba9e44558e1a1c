"""
服务层模块
提供业务逻辑的抽象层，对外暴露唯一的存储入口
"""

from .storage_service import MemStorage

__all__ = [
    "MemStorage"
]
