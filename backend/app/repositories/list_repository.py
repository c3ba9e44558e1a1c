"""
清单管理 Repository
提供 lists 和 list_collaborators 的增删改查操作，以及清单级的权限判断
"""

from typing import List, Optional

from sqlalchemy import func
from sqlmodel import Session, select, col

from app.db.init_db import DEFAULT_LIST_TITLE
from app.models.base import utc_now
from app.models.restaurant import RestaurantInList
from app.models.restaurant_list import RestaurantList, ListCollaborator
from app.models.user import User
from app.repositories.access import AccessPolicy
from app.repositories.user_repository import UserRepository
from app.schemas.inputs import ListCreate, ListUpdate
from app.schemas.views import ListWithDetails, CollaboratorSummary


class ListRepository:
    """
    清单数据访问对象
    封装所有与 lists、list_collaborators 表相关的数据库操作
    """

    def __init__(self, session: Session):
        """
        初始化 Repository

        Args:
            session: SQLModel 数据库会话
        """
        self.session = session
        self.access = AccessPolicy(session)

    # ==================== RestaurantList 操作 ====================

    def create(self, fields: ListCreate, owner_id: int) -> RestaurantList:
        """
        创建清单，并在同一次提交中写入创建者的所有者协作者行

        Args:
            fields: 清单字段
            owner_id: 创建者用户 ID

        Returns:
            创建的 RestaurantList 对象
        """
        restaurant_list = RestaurantList(**fields.model_dump())
        self.session.add(restaurant_list)
        self.session.flush()
        self.session.add(ListCollaborator(list_id=restaurant_list.id, user_id=owner_id, is_owner=True))
        self.session.commit()
        self.session.refresh(restaurant_list)
        return restaurant_list

    def get_by_id(self, list_id: int) -> Optional[RestaurantList]:
        """
        根据 ID 获取清单（不做权限判断，仅供内部使用）

        Returns:
            RestaurantList 对象，不存在则返回 None
        """
        return self.session.get(RestaurantList, list_id)

    def get_lists_by_user(self, user_id: int) -> List[ListWithDetails]:
        """
        获取用户参与的所有清单（所有者或被分享）

        Args:
            user_id: 用户 ID

        Returns:
            ListWithDetails 列表，按清单 ID 正序
        """
        return self._lists_with_details(ListCollaborator.user_id == user_id)

    def get_shared_lists(self, user_id: int) -> List[ListWithDetails]:
        """
        获取分享给用户的清单（协作者行 is_owner=False）

        Args:
            user_id: 用户 ID

        Returns:
            ListWithDetails 列表，按清单 ID 正序
        """
        return self._lists_with_details(
            ListCollaborator.user_id == user_id,
            ListCollaborator.is_owner == False  # noqa: E712
        )

    def get_details(self, list_id: int, user_id: int) -> Optional[ListWithDetails]:
        """
        获取清单详情，用户必须是协作者

        Returns:
            ListWithDetails，不存在或无权限返回 None
        """
        if not self.access.can_view_list(list_id, user_id):
            return None
        return self._to_details(self.get_by_id(list_id))

    def get_default_list(self, user_id: int) -> Optional[RestaurantList]:
        """
        获取用户的默认清单

        优先返回标题为 "My Restaurants" 的清单，否则返回用户的第一个清单
        """
        statement = select(RestaurantList).join(
            ListCollaborator, col(ListCollaborator.list_id) == col(RestaurantList.id)
        ).where(ListCollaborator.user_id == user_id).order_by(col(RestaurantList.id).asc())
        lists = self.session.exec(statement).all()
        for restaurant_list in lists:
            if restaurant_list.title == DEFAULT_LIST_TITLE:
                return restaurant_list
        return lists[0] if lists else None

    def update(self, list_id: int, fields: ListUpdate, user_id: int) -> Optional[RestaurantList]:
        """
        更新清单（仅所有者）

        只写入 fields 中显式设置的字段，并刷新 updated_at

        Returns:
            更新后的 RestaurantList，不存在或非所有者返回 None
        """
        if not self.access.is_list_owner(list_id, user_id):
            return None

        restaurant_list = self.get_by_id(list_id)
        for key, value in fields.model_dump(exclude_unset=True).items():
            setattr(restaurant_list, key, value)
        restaurant_list.updated_at = utc_now()
        self.session.add(restaurant_list)
        self.session.commit()
        self.session.refresh(restaurant_list)
        return restaurant_list

    def delete(self, list_id: int, user_id: int) -> bool:
        """
        删除清单（仅所有者），级联删除协作者行和餐厅成员行

        到访、笔记、照片挂在全局餐厅下，不受影响

        Returns:
            删除成功返回 True，不存在或非所有者返回 False
        """
        if not self.access.is_list_owner(list_id, user_id):
            return False

        for model in (ListCollaborator, RestaurantInList):
            statement = select(model).where(model.list_id == list_id)
            for row in self.session.exec(statement).all():
                self.session.delete(row)
        self.session.delete(self.get_by_id(list_id))
        self.session.commit()
        print(f"[ListRepository] 清单已删除 (ID: {list_id})")
        return True

    # ==================== ListCollaborator 操作 ====================

    def share(
        self,
        list_id: int,
        target_user_id: int,
        grant_owner: bool,
        requesting_user_id: int
    ) -> bool:
        """
        分享清单

        目标用户已是协作者时原地更新 is_owner，不新增行；
        会导致清单没有任何所有者的降级请求被拒绝

        Args:
            list_id: 清单 ID
            target_user_id: 被分享的用户 ID
            grant_owner: 是否授予所有者权限
            requesting_user_id: 发起分享的用户（必须是所有者）

        Returns:
            成功返回 True，否则返回 False
        """
        if not self.access.is_list_owner(list_id, requesting_user_id):
            return False
        if self.session.get(User, target_user_id) is None:
            return False

        collaborator = self.access.get_list_collaborator(list_id, target_user_id)
        if collaborator:
            if collaborator.is_owner and not grant_owner and self._owner_count(list_id) <= 1:
                return False
            collaborator.is_owner = grant_owner
        else:
            collaborator = ListCollaborator(
                list_id=list_id,
                user_id=target_user_id,
                is_owner=grant_owner
            )
        self.session.add(collaborator)
        self.session.commit()
        return True

    def get_collaborators(self, list_id: int) -> List[CollaboratorSummary]:
        """获取清单的协作者摘要，按加入顺序"""
        statement = select(ListCollaborator).where(
            ListCollaborator.list_id == list_id
        ).order_by(col(ListCollaborator.id).asc())
        rows = self.session.exec(statement).all()
        summaries = UserRepository(self.session).get_summaries(row.user_id for row in rows)
        return [
            CollaboratorSummary(
                user_id=row.user_id,
                name=summaries[row.user_id].name,
                avatar=summaries[row.user_id].avatar,
                is_owner=row.is_owner
            )
            for row in rows
        ]

    def _owner_count(self, list_id: int) -> int:
        statement = select(func.count()).select_from(ListCollaborator).where(
            ListCollaborator.list_id == list_id,
            ListCollaborator.is_owner == True  # noqa: E712
        )
        return self.session.exec(statement).one()

    def _lists_with_details(self, *conditions) -> List[ListWithDetails]:
        statement = select(RestaurantList).join(
            ListCollaborator, col(ListCollaborator.list_id) == col(RestaurantList.id)
        ).where(*conditions).order_by(col(RestaurantList.id).asc())
        return [self._to_details(restaurant_list) for restaurant_list in self.session.exec(statement).all()]

    def _to_details(self, restaurant_list: RestaurantList) -> ListWithDetails:
        statement = select(func.count()).select_from(RestaurantInList).where(
            RestaurantInList.list_id == restaurant_list.id
        )
        return ListWithDetails(
            **restaurant_list.model_dump(),
            collaborators=self.get_collaborators(restaurant_list.id),
            restaurant_count=self.session.exec(statement).one()
        )
