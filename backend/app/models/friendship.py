"""
社交域模型 - 好友关系表
"""

from typing import Optional
from sqlmodel import Field

from enum import Enum

from .base import TimestampModel


class FriendshipStatus(str, Enum):
    """好友关系状态枚举

    被拒绝的请求直接删除，不存在 rejected 状态
    """
    PENDING = "pending"
    ACCEPTED = "accepted"


class Friendship(TimestampModel, table=True):
    """
    好友关系表
    同一对用户（无序）最多只有一条记录，唯一性由 FriendshipRepository 保证
    """
    __tablename__ = "friendships"

    # 主键
    id: Optional[int] = Field(default=None, primary_key=True)

    # 发起方
    requester_id: int = Field(foreign_key="users.id", index=True, nullable=False)

    # 接收方
    recipient_id: int = Field(foreign_key="users.id", index=True, nullable=False)

    status: FriendshipStatus = Field(default=FriendshipStatus.PENDING, nullable=False)
