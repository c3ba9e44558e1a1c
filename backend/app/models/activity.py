"""
动态域模型 - 动态流水表
"""

from typing import Optional, Dict, Any
from sqlmodel import Field, Column, JSON

from enum import Enum

from .base import CreatedAtModel


class ActivityType(str, Enum):
    """动态类型枚举 - 固定集合，决定 data 的结构和动态流的相关性规则"""
    RESTAURANT_ADDED = "restaurant_added"
    VISIT_ADDED = "visit_added"
    NOTE_ADDED = "note_added"
    LIST_SHARED = "list_shared"
    AI_SUMMARY = "ai_summary"
    AI_SUGGESTION = "ai_suggestion"
    FRIEND_REQUEST_SENT = "friend_request_sent"
    FRIEND_REQUEST_ACCEPTED = "friend_request_accepted"


class Activity(CreatedAtModel, table=True):
    """
    动态流水表
    只追加，不更新也不删除
    """
    __tablename__ = "activities"

    # 主键
    id: Optional[int] = Field(default=None, primary_key=True)

    # 外键：动作发起人
    user_id: int = Field(foreign_key="users.id", index=True, nullable=False)

    type: ActivityType = Field(nullable=False)

    # 载荷 JSON，结构由 type 决定，见 app.schemas.activity
    data: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
