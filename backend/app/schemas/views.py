"""
读取视图模型

MemStorage 的查询操作返回的富化结构：在表行之上附加协作者摘要、
可见清单、作者信息等，全部相对于调用者计算。
"""

from datetime import datetime
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field

from app.models.activity import ActivityType


class UserSummary(BaseModel):
    """展示用的用户摘要（名称 + 头像）"""
    name: str = "Unknown User"
    avatar: Optional[str] = None


class CollaboratorSummary(BaseModel):
    """清单或到访的协作者摘要"""
    user_id: int
    name: str = "Unknown User"
    avatar: Optional[str] = None
    is_owner: bool = False


class ListWithDetails(BaseModel):
    """带协作者和餐厅数量的清单"""
    id: int
    title: str
    description: Optional[str] = None
    cover_image: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    collaborators: List[CollaboratorSummary] = Field(default_factory=list)
    restaurant_count: int = 0


class ListRef(BaseModel):
    """餐厅所在清单的引用"""
    list_id: int
    list_title: str


class RestaurantWithLists(BaseModel):
    """
    带可见清单的餐厅

    lists 只包含调用者有权访问的清单；
    order 仅在按清单查询时填充
    """
    id: int
    name: str
    place_id: str
    address: Optional[str] = None
    cuisine: Optional[str] = None
    price_level: Optional[str] = None
    rating: Optional[str] = None
    photo_url: Optional[str] = None
    created_at: datetime
    lists: List[ListRef] = Field(default_factory=list)
    order: Optional[int] = None


class NoteWithAuthor(BaseModel):
    id: int
    visit_id: int
    user_id: int
    content: str
    created_at: datetime
    updated_at: datetime
    user: UserSummary


class PhotoRead(BaseModel):
    id: int
    visit_id: int
    user_id: int
    url: str
    created_at: datetime


class VisitWithDetails(BaseModel):
    """带笔记、照片和协作者的到访"""
    id: int
    restaurant_id: int
    date: datetime
    summary: Optional[str] = None
    occasion: Optional[str] = None
    created_at: datetime
    notes: List[NoteWithAuthor] = Field(default_factory=list)
    photos: List[PhotoRead] = Field(default_factory=list)
    collaborators: List[CollaboratorSummary] = Field(default_factory=list)


class ActivityWithDetails(BaseModel):
    """动态流条目，附带发起人信息"""
    id: int
    user_id: int
    type: ActivityType
    data: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    user: UserSummary


class FriendWithDetails(BaseModel):
    """好友或好友请求发起人"""
    id: int
    username: str
    name: str
    email: str
    avatar: Optional[str] = None
    status: str


class UserStats(BaseModel):
    """
    仪表盘统计

    total_visits 是到访协作者行数（"我参与过的到访"）；
    total_collaborators 是在我的清单上出现过的其他用户数，并非好友数
    """
    total_lists: int = 0
    total_restaurants: int = 0
    total_visits: int = 0
    total_collaborators: int = 0
