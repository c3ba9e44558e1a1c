"""
清单域模型 - 餐厅清单表与清单协作者表
"""

from typing import Optional
from sqlmodel import Field
from sqlalchemy import UniqueConstraint

from .base import CreatedAtModel, TimestampModel


class RestaurantList(TimestampModel, table=True):
    """
    餐厅清单表
    清单本身不记录归属，归属关系全部由 list_collaborators 表表达
    """
    __tablename__ = "lists"

    # 主键
    id: Optional[int] = Field(default=None, primary_key=True)

    title: str = Field(nullable=False)

    description: Optional[str] = Field(default=None)

    # 封面图片 URL
    cover_image: Optional[str] = Field(default=None)


class ListCollaborator(CreatedAtModel, table=True):
    """
    清单协作者表
    用户与清单的多对多关联，is_owner=True 可修改、删除和分享清单，
    is_owner=False 只能查看和追加餐厅
    """
    __tablename__ = "list_collaborators"

    # 复合唯一约束：同一用户在同一清单只有一行，重复分享时原地更新 is_owner
    __table_args__ = (UniqueConstraint("list_id", "user_id", name="uix_list_user"),)

    # 主键
    id: Optional[int] = Field(default=None, primary_key=True)

    list_id: int = Field(foreign_key="lists.id", index=True, nullable=False)

    user_id: int = Field(foreign_key="users.id", index=True, nullable=False)

    is_owner: bool = Field(default=False, nullable=False)
