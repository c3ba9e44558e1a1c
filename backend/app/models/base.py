"""
基础模型模块
提供所有表模型共用的时间戳基类
"""

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import SQLModel, Field


def utc_now() -> datetime:
    """返回 timezone-aware 的当前 UTC 时间"""
    return datetime.now(timezone.utc)


class CreatedAtModel(SQLModel):
    """创建时间基类，只追加不修改的表（如 activities、photos）使用"""
    created_at: Optional[datetime] = Field(
        default_factory=utc_now,
        nullable=False
    )


class TimestampModel(CreatedAtModel):
    """时间戳基类，为可修改的表提供 created_at 和 updated_at 字段

    updated_at 由 Repository 在写入时显式刷新
    """
    updated_at: Optional[datetime] = Field(
        default_factory=utc_now,
        nullable=False
    )
