"""
到访域模型 - 到访表、到访协作者表、笔记表、照片表
"""

from datetime import datetime
from typing import Optional
from sqlmodel import Field
from sqlalchemy import UniqueConstraint

from .base import CreatedAtModel, TimestampModel, utc_now


class Visit(CreatedAtModel, table=True):
    """
    到访表
    挂在全局餐厅下，删除清单不会级联删除到访记录
    """
    __tablename__ = "visits"

    # 主键
    id: Optional[int] = Field(default=None, primary_key=True)

    restaurant_id: int = Field(foreign_key="restaurants.id", index=True, nullable=False)

    # 到访日期
    date: datetime = Field(default_factory=utc_now, nullable=False)

    # AI 生成的总结，覆盖写入，不保留历史
    summary: Optional[str] = Field(default=None)

    # 场合标签，如 "birthday"
    occasion: Optional[str] = Field(default=None)


class VisitCollaborator(CreatedAtModel, table=True):
    """
    到访协作者表
    创建者 is_owner=True，创建时带入的同行者 is_owner=False
    """
    __tablename__ = "visit_collaborators"

    __table_args__ = (UniqueConstraint("visit_id", "user_id", name="uix_visit_user"),)

    # 主键
    id: Optional[int] = Field(default=None, primary_key=True)

    visit_id: int = Field(foreign_key="visits.id", index=True, nullable=False)

    user_id: int = Field(foreign_key="users.id", index=True, nullable=False)

    is_owner: bool = Field(default=False, nullable=False)


class Note(TimestampModel, table=True):
    """笔记表"""
    __tablename__ = "notes"

    id: Optional[int] = Field(default=None, primary_key=True)

    visit_id: int = Field(foreign_key="visits.id", index=True, nullable=False)

    # 作者
    user_id: int = Field(foreign_key="users.id", nullable=False)

    content: str = Field(nullable=False)


class Photo(CreatedAtModel, table=True):
    """照片表"""
    __tablename__ = "photos"

    id: Optional[int] = Field(default=None, primary_key=True)

    visit_id: int = Field(foreign_key="visits.id", index=True, nullable=False)

    # 上传者
    user_id: int = Field(foreign_key="users.id", nullable=False)

    url: str = Field(nullable=False)
