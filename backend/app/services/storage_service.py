"""
存储服务层

MemStorage 是餐厅笔记本唯一的数据访问入口，负责：
1. 持有内存数据库引擎，调用方拿不到底层表
2. 用一把进程级锁串行化所有操作（"先算 order 再插入"这类复合操作因此是原子的）
3. 每个操作一个 Session 和一个数据库事务，异常时整体回滚后原样抛出
4. 组合各 Repository，并为自身执行的操作记录动态
"""

import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Union

from sqlmodel import Session

from app.db.init_db import init_db, is_demo_seeding_enabled
from app.models.activity import Activity, ActivityType
from app.models.restaurant import Restaurant, RestaurantInList
from app.models.restaurant_list import RestaurantList
from app.models.user import User
from app.models.visit import Visit, Note, Photo
from app.repositories.activity_repository import ActivityRepository
from app.repositories.friendship_repository import FriendshipRepository
from app.repositories.list_repository import ListRepository
from app.repositories.restaurant_repository import RestaurantRepository
from app.repositories.stats_repository import StatsRepository
from app.repositories.user_repository import UserRepository
from app.repositories.visit_repository import VisitRepository
from app.schemas.activity import (
    ActivityPayload, RestaurantAddedPayload, VisitAddedPayload, NoteAddedPayload,
    ListSharedPayload, AiSummaryPayload, FriendRequestSentPayload,
    FriendRequestAcceptedPayload
)
from app.schemas.inputs import (
    UserCreate, ListCreate, ListUpdate, RestaurantCreate,
    VisitCreate, NoteCreate, PhotoCreate
)
from app.schemas.views import (
    ListWithDetails, RestaurantWithLists, VisitWithDetails,
    ActivityWithDetails, FriendWithDetails, UserStats
)


class MemStorage:
    """
    内存关系存储

    错误约定：
    - 读操作和大部分写操作对"不存在或无权限"返回 None / False / 空列表，
      两者不可区分，避免泄露无权访问资源的存在性
    - create_note / create_photo 抛出 VisitNotFoundError / VisitAccessDeniedError
    - create_user 遇到重复用户名或第三方 ID 抛出 UserConflictError

    使用示例：
        storage = MemStorage(seed_demo_friends=False)
        alice = storage.create_user(UserCreate(username="alice", name="Alice", email="a@x.io"))
        lists = storage.get_lists_by_user(alice.id)
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        seed_demo_friends: Optional[bool] = None
    ):
        """
        初始化存储，创建引擎和表结构

        Args:
            database_url: 数据库 URL（默认读取 DATABASE_URL，缺省为内存 SQLite）
            seed_demo_friends: 新用户是否自动获得演示好友（默认非 production 环境开启）
        """
        if seed_demo_friends is None:
            seed_demo_friends = is_demo_seeding_enabled()
        self.seed_demo_friends = seed_demo_friends

        self._engine = init_db(database_url, with_default_data=seed_demo_friends)
        self._lock = threading.RLock()
        print(f"[MemStorage] 初始化完成 (演示好友: {'开启' if seed_demo_friends else '关闭'})")

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        """
        获取一次操作的会话

        持锁期间独占整个存储；expire_on_commit=False 使返回的对象在会话关闭后仍可读。
        会话绑定在连接级事务上（join_transaction_mode="rollback_only"），
        Repository 内部的 commit() 只做 flush，整个操作正常结束时才统一提交，
        任何异常都会回滚本次操作的全部写入（包括已 "commit" 的业务行和动态）
        """
        with self._lock:
            with self._engine.connect() as connection:
                transaction = connection.begin()
                with Session(
                    bind=connection,
                    expire_on_commit=False,
                    join_transaction_mode="rollback_only"
                ) as session:
                    try:
                        yield session
                    except Exception:
                        session.rollback()
                        if transaction.is_active:
                            transaction.rollback()
                        raise
                    session.flush()
                    transaction.commit()

    # ==================== 用户 ====================

    def create_user(self, fields: UserCreate) -> User:
        """
        创建用户，同时创建默认清单 "My Restaurants"

        Raises:
            UserConflictError: 用户名或第三方认证 ID 已存在
        """
        with self._session_scope() as session:
            return UserRepository(session).create(fields, seed_demo_friends=self.seed_demo_friends)

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        with self._session_scope() as session:
            return UserRepository(session).get_by_id(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._session_scope() as session:
            return UserRepository(session).get_by_username(username)

    def get_user_by_external_id(self, external_auth_id: str) -> Optional[User]:
        with self._session_scope() as session:
            return UserRepository(session).get_by_external_id(external_auth_id)

    def update_user_avatar(self, user_id: int, avatar: Optional[str]) -> Optional[User]:
        with self._session_scope() as session:
            return UserRepository(session).update_avatar(user_id, avatar)

    def search_users(self, query: str, excluding_user_id: int) -> List[User]:
        with self._session_scope() as session:
            return UserRepository(session).search(query, excluding_user_id)

    # ==================== 好友 ====================

    def send_friend_request(self, from_user_id: int, to_user_id: int) -> bool:
        """发送好友请求，成功时记录 friend_request_sent 动态"""
        with self._session_scope() as session:
            friendship = FriendshipRepository(session).send_request(from_user_id, to_user_id)
            if friendship is None:
                return False
            ActivityRepository(session).create(
                from_user_id,
                ActivityType.FRIEND_REQUEST_SENT,
                FriendRequestSentPayload(friend_id=to_user_id)
            )
            return True

    def accept_friend_request(self, accepter_id: int, requester_id: int) -> bool:
        """接受好友请求，成功时记录 friend_request_accepted 动态"""
        with self._session_scope() as session:
            friendship = FriendshipRepository(session).accept_request(accepter_id, requester_id)
            if friendship is None:
                return False
            ActivityRepository(session).create(
                accepter_id,
                ActivityType.FRIEND_REQUEST_ACCEPTED,
                FriendRequestAcceptedPayload(friend_id=requester_id)
            )
            return True

    def reject_friend_request(self, accepter_id: int, requester_id: int) -> bool:
        """拒绝好友请求，请求行直接删除，不记录动态"""
        with self._session_scope() as session:
            return FriendshipRepository(session).reject_request(accepter_id, requester_id)

    def get_friends(self, user_id: int) -> List[FriendWithDetails]:
        with self._session_scope() as session:
            return FriendshipRepository(session).get_friends(user_id)

    def get_friend_requests(self, user_id: int) -> List[FriendWithDetails]:
        with self._session_scope() as session:
            return FriendshipRepository(session).get_incoming_requests(user_id)

    # ==================== 清单 ====================

    def create_list(self, fields: ListCreate, owner_id: int) -> RestaurantList:
        with self._session_scope() as session:
            return ListRepository(session).create(fields, owner_id)

    def get_lists_by_user(self, user_id: int) -> List[ListWithDetails]:
        with self._session_scope() as session:
            return ListRepository(session).get_lists_by_user(user_id)

    def get_shared_lists(self, user_id: int) -> List[ListWithDetails]:
        with self._session_scope() as session:
            return ListRepository(session).get_shared_lists(user_id)

    def get_list_details(self, list_id: int, user_id: int) -> Optional[ListWithDetails]:
        with self._session_scope() as session:
            return ListRepository(session).get_details(list_id, user_id)

    def update_list(self, list_id: int, fields: ListUpdate, user_id: int) -> Optional[RestaurantList]:
        with self._session_scope() as session:
            return ListRepository(session).update(list_id, fields, user_id)

    def delete_list(self, list_id: int, user_id: int) -> bool:
        with self._session_scope() as session:
            return ListRepository(session).delete(list_id, user_id)

    def share_list(
        self,
        list_id: int,
        target_user_id: int,
        grant_owner: bool,
        requesting_user_id: int
    ) -> bool:
        """分享清单，成功时记录 list_shared 动态"""
        with self._session_scope() as session:
            shared = ListRepository(session).share(list_id, target_user_id, grant_owner, requesting_user_id)
            if shared:
                ActivityRepository(session).create(
                    requesting_user_id,
                    ActivityType.LIST_SHARED,
                    ListSharedPayload(list_id=list_id, shared_with_id=target_user_id)
                )
            return shared

    # ==================== 餐厅 ====================

    def create_or_get_restaurant(self, fields: RestaurantCreate) -> Restaurant:
        with self._session_scope() as session:
            return RestaurantRepository(session).create_or_get(fields)

    def create_restaurant_for_user(self, fields: RestaurantCreate, user_id: int) -> Restaurant:
        """
        创建（或获取）餐厅，并放入用户的默认清单

        默认清单取 "My Restaurants"，没有时取用户的第一个清单；
        用户没有任何清单时只创建餐厅
        """
        with self._session_scope() as session:
            restaurant = RestaurantRepository(session).create_or_get(fields)
            default_list = ListRepository(session).get_default_list(user_id)
            if default_list is not None:
                self._add_restaurant_to_list(session, default_list.id, restaurant.id, user_id)
            return restaurant

    def get_restaurants_by_user(self, user_id: int) -> List[RestaurantWithLists]:
        with self._session_scope() as session:
            return RestaurantRepository(session).get_by_user(user_id)

    def get_restaurant_details(self, restaurant_id: int, user_id: int) -> Optional[RestaurantWithLists]:
        with self._session_scope() as session:
            return RestaurantRepository(session).get_details(restaurant_id, user_id)

    def get_restaurants_by_list(self, list_id: int, user_id: int) -> List[RestaurantWithLists]:
        with self._session_scope() as session:
            return RestaurantRepository(session).get_by_list(list_id, user_id)

    def add_restaurant_to_list(
        self,
        list_id: int,
        restaurant_id: int,
        user_id: int
    ) -> Optional[RestaurantInList]:
        """把餐厅加入清单，新建成员行时记录 restaurant_added 动态"""
        with self._session_scope() as session:
            return self._add_restaurant_to_list(session, list_id, restaurant_id, user_id)

    def remove_restaurant_from_list(self, list_id: int, restaurant_id: int, user_id: int) -> bool:
        with self._session_scope() as session:
            return RestaurantRepository(session).remove_from_list(list_id, restaurant_id, user_id)

    def reorder_restaurants_in_list(
        self,
        list_id: int,
        ordered_restaurant_ids: Sequence[int],
        user_id: int
    ) -> bool:
        with self._session_scope() as session:
            return RestaurantRepository(session).reorder(list_id, list(ordered_restaurant_ids), user_id)

    def _add_restaurant_to_list(
        self,
        session: Session,
        list_id: int,
        restaurant_id: int,
        user_id: int
    ) -> Optional[RestaurantInList]:
        restaurants = RestaurantRepository(session)
        is_new = restaurants.get_membership(list_id, restaurant_id) is None
        membership = restaurants.add_to_list(list_id, restaurant_id, user_id)
        if membership is not None and is_new:
            ActivityRepository(session).create(
                user_id,
                ActivityType.RESTAURANT_ADDED,
                RestaurantAddedPayload(restaurant_id=restaurant_id, list_id=list_id)
            )
        return membership

    # ==================== 到访 / 笔记 / 照片 ====================

    def create_visit(
        self,
        fields: VisitCreate,
        creator_id: int,
        collaborator_ids: Iterable[int] = ()
    ) -> Optional[Visit]:
        """创建到访，成功时记录 visit_added 动态"""
        with self._session_scope() as session:
            visit = VisitRepository(session).create(fields, creator_id, collaborator_ids)
            if visit is not None:
                ActivityRepository(session).create(
                    creator_id,
                    ActivityType.VISIT_ADDED,
                    VisitAddedPayload(visit_id=visit.id, restaurant_id=visit.restaurant_id)
                )
            return visit

    def get_visits_by_restaurant(self, restaurant_id: int, user_id: int) -> List[VisitWithDetails]:
        with self._session_scope() as session:
            return VisitRepository(session).get_by_restaurant(restaurant_id, user_id)

    def get_visit_details(self, visit_id: int, user_id: int) -> Optional[VisitWithDetails]:
        with self._session_scope() as session:
            return VisitRepository(session).get_details(visit_id, user_id)

    def update_visit_summary(self, visit_id: int, summary: str, user_id: int) -> Optional[Visit]:
        """覆盖写入到访总结，成功时记录 ai_summary 动态"""
        with self._session_scope() as session:
            visit = VisitRepository(session).update_summary(visit_id, summary, user_id)
            if visit is not None:
                ActivityRepository(session).create(
                    user_id,
                    ActivityType.AI_SUMMARY,
                    AiSummaryPayload(visit_id=visit_id)
                )
            return visit

    def create_note(self, fields: NoteCreate, author_id: int) -> Note:
        """
        创建笔记，成功时记录 note_added 动态

        Raises:
            VisitNotFoundError: 到访不存在
            VisitAccessDeniedError: 作者不是该到访的协作者
        """
        with self._session_scope() as session:
            note = VisitRepository(session).create_note(fields, author_id)
            ActivityRepository(session).create(
                author_id,
                ActivityType.NOTE_ADDED,
                NoteAddedPayload(note_id=note.id, visit_id=note.visit_id)
            )
            return note

    def create_photo(self, fields: PhotoCreate, uploader_id: int) -> Photo:
        """
        创建照片（没有对应的动态类型，不记录动态）

        Raises:
            VisitNotFoundError: 到访不存在
            VisitAccessDeniedError: 上传者不是该到访的协作者
        """
        with self._session_scope() as session:
            return VisitRepository(session).create_photo(fields, uploader_id)

    # ==================== 动态 / 统计 ====================

    def create_activity(
        self,
        actor_id: int,
        activity_type: Union[ActivityType, str],
        payload: Union[ActivityPayload, Dict[str, Any], None] = None
    ) -> Activity:
        """
        追加一条动态（供调用方记录 ai_suggestion 等存储层之外的事件）

        Raises:
            ValueError: 动态类型不在枚举内
        """
        with self._session_scope() as session:
            return ActivityRepository(session).create(actor_id, activity_type, payload)

    def get_activity_feed(self, user_id: int) -> List[ActivityWithDetails]:
        with self._session_scope() as session:
            return ActivityRepository(session).get_feed(user_id)

    def get_user_stats(self, user_id: int) -> UserStats:
        with self._session_scope() as session:
            return StatsRepository(session).get_user_stats(user_id)
