"""
动态流 Repository
提供 activities 的追加写入和按查看者计算的动态流
"""

from typing import Any, Dict, List, Set, Union

from sqlmodel import Session, select, col

from app.models.activity import Activity, ActivityType
from app.models.visit import Visit
from app.repositories.access import AccessPolicy
from app.repositories.user_repository import UserRepository
from app.schemas.activity import (
    ActivityPayload, RestaurantAddedPayload, VisitAddedPayload, NoteAddedPayload,
    ListSharedPayload, AiSummaryPayload, parse_payload, dump_payload
)
from app.schemas.views import ActivityWithDetails


# 动态流最多返回的条数
FEED_LIMIT = 20


class ActivityRepository:
    """
    动态流数据访问对象

    动态只追加不修改；动态流每次调用都基于当前的协作关系全量重新计算，
    是一个相关性过滤器，不是订阅机制
    """

    def __init__(self, session: Session):
        """
        初始化 Repository

        Args:
            session: SQLModel 数据库会话
        """
        self.session = session
        self.access = AccessPolicy(session)

    def create(
        self,
        actor_id: int,
        activity_type: Union[ActivityType, str],
        payload: Union[ActivityPayload, Dict[str, Any], None] = None
    ) -> Activity:
        """
        追加一条动态

        Args:
            actor_id: 动作发起人
            activity_type: 动态类型，必须属于 ActivityType
            payload: 载荷模型或字典

        Returns:
            创建的 Activity 对象

        Raises:
            ValueError: 动态类型不在枚举内，载荷模型与动态类型不匹配，或载荷字段类型错误
        """
        activity_type = ActivityType(activity_type)
        if isinstance(payload, ActivityPayload):
            payload_type = getattr(payload, "type", activity_type.value)
            if payload_type != activity_type.value:
                raise ValueError(f"载荷类型 '{payload_type}' 与动态类型 '{activity_type.value}' 不匹配")
            payload = payload.model_dump(exclude={"type"})
        parsed = parse_payload(activity_type, payload)

        activity = Activity(user_id=actor_id, type=activity_type, data=dump_payload(parsed))
        self.session.add(activity)
        self.session.commit()
        self.session.refresh(activity)
        return activity

    def get_feed(self, user_id: int, limit: int = FEED_LIMIT) -> List[ActivityWithDetails]:
        """
        计算用户的动态流

        先求三个集合：
        (a) 用户参与的清单；
        (b) 这些清单中的餐厅；
        (c) 这些餐厅下用户同时是协作者的到访。
        满足任一条件的动态被收录：发起人是用户本人；list_shared 且清单属于 (a)；
        restaurant_added / visit_added 且餐厅属于 (b)；note_added / ai_summary 且到访属于 (c)。

        Args:
            user_id: 查看者用户 ID
            limit: 最多返回条数（默认 20）

        Returns:
            ActivityWithDetails 列表，按创建时间倒序
        """
        list_ids = self.access.list_ids_for_user(user_id)
        restaurant_ids = self.access.restaurant_ids_for_lists(list_ids)
        visit_ids = self._visit_ids_for_restaurants(restaurant_ids) & self.access.visit_ids_for_user(user_id)

        statement = select(Activity).order_by(col(Activity.created_at).desc(), col(Activity.id).desc())

        relevant: List[Activity] = []
        for activity in self.session.exec(statement):
            if activity.user_id == user_id or self._is_relevant(
                parse_payload(activity.type, activity.data),
                list_ids,
                restaurant_ids,
                visit_ids
            ):
                relevant.append(activity)
                if len(relevant) >= limit:
                    break

        summaries = UserRepository(self.session).get_summaries(a.user_id for a in relevant)
        return [
            ActivityWithDetails(**activity.model_dump(), user=summaries[activity.user_id])
            for activity in relevant
        ]

    @staticmethod
    def _is_relevant(
        payload: ActivityPayload,
        list_ids: Set[int],
        restaurant_ids: Set[int],
        visit_ids: Set[int]
    ) -> bool:
        if isinstance(payload, ListSharedPayload):
            return payload.list_id in list_ids
        if isinstance(payload, (RestaurantAddedPayload, VisitAddedPayload)):
            return payload.restaurant_id in restaurant_ids
        if isinstance(payload, (NoteAddedPayload, AiSummaryPayload)):
            return payload.visit_id in visit_ids
        # ai_suggestion 和好友请求只对发起人本人可见
        return False

    def _visit_ids_for_restaurants(self, restaurant_ids: Set[int]) -> Set[int]:
        if not restaurant_ids:
            return set()
        statement = select(Visit.id).where(col(Visit.restaurant_id).in_(list(restaurant_ids)))
        return set(self.session.exec(statement).all())
