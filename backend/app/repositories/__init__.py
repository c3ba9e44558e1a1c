"""
Repository (DAO) 模块
提供数据库操作的抽象层，封装 CRUD 逻辑和访问控制
"""

from .access import AccessPolicy
from .user_repository import UserRepository
from .friendship_repository import FriendshipRepository
from .list_repository import ListRepository
from .restaurant_repository import RestaurantRepository
from .visit_repository import VisitRepository
from .activity_repository import ActivityRepository
from .stats_repository import StatsRepository
from .exceptions import (
    StorageError, VisitNotFoundError, VisitAccessDeniedError, UserConflictError
)

__all__ = [
    "AccessPolicy",
    "UserRepository",
    "FriendshipRepository",
    "ListRepository",
    "RestaurantRepository",
    "VisitRepository",
    "ActivityRepository",
    "StatsRepository",
    "StorageError",
    "VisitNotFoundError",
    "VisitAccessDeniedError",
    "UserConflictError"
]
