"""
Schema 模块
导出写入字段模型、读取视图模型和动态载荷模型
"""

from .inputs import (
    UserCreate, ListCreate, ListUpdate, RestaurantCreate,
    VisitCreate, NoteCreate, PhotoCreate
)
from .views import (
    UserSummary, CollaboratorSummary, ListWithDetails, ListRef,
    RestaurantWithLists, NoteWithAuthor, PhotoRead, VisitWithDetails,
    ActivityWithDetails, FriendWithDetails, UserStats
)
from .activity import (
    ActivityPayload, AnyActivityPayload,
    RestaurantAddedPayload, VisitAddedPayload, NoteAddedPayload,
    ListSharedPayload, AiSummaryPayload, AiSuggestionPayload,
    FriendRequestSentPayload, FriendRequestAcceptedPayload,
    parse_payload, dump_payload
)

__all__ = [
    # 写入
    "UserCreate", "ListCreate", "ListUpdate", "RestaurantCreate",
    "VisitCreate", "NoteCreate", "PhotoCreate",
    # 读取
    "UserSummary", "CollaboratorSummary", "ListWithDetails", "ListRef",
    "RestaurantWithLists", "NoteWithAuthor", "PhotoRead", "VisitWithDetails",
    "ActivityWithDetails", "FriendWithDetails", "UserStats",
    # 动态载荷
    "ActivityPayload", "AnyActivityPayload",
    "RestaurantAddedPayload", "VisitAddedPayload", "NoteAddedPayload",
    "ListSharedPayload", "AiSummaryPayload", "AiSuggestionPayload",
    "FriendRequestSentPayload", "FriendRequestAcceptedPayload",
    "parse_payload", "dump_payload"
]
