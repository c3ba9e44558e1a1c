"""
数据库模型模块
导出所有表模型和枚举类型
"""

# 用户与社交域
from .user import User
from .friendship import Friendship, FriendshipStatus

# 清单域
from .restaurant_list import RestaurantList, ListCollaborator

# 餐厅域
from .restaurant import Restaurant, RestaurantInList

# 到访域
from .visit import Visit, VisitCollaborator, Note, Photo

# 动态域
from .activity import Activity, ActivityType

# 基础模型
from .base import CreatedAtModel, TimestampModel

# 定义导出的内容
__all__ = [
    # 用户与社交域
    "User",
    "Friendship", "FriendshipStatus",
    # 清单域
    "RestaurantList", "ListCollaborator",
    # 餐厅域
    "Restaurant", "RestaurantInList",
    # 到访域
    "Visit", "VisitCollaborator", "Note", "Photo",
    # 动态域
    "Activity", "ActivityType",
    # 基础模型
    "CreatedAtModel", "TimestampModel"
]
