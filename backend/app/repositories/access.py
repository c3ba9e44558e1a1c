"""
访问控制谓词
所有读写操作的唯一准入判断：清单协作者、到访协作者
"""

from typing import Iterable, Set

from sqlmodel import Session, select, col

from app.models.restaurant_list import RestaurantList, ListCollaborator
from app.models.restaurant import RestaurantInList
from app.models.visit import Visit, VisitCollaborator


class AccessPolicy:
    """
    访问控制对象
    基于协作者表计算用户可见的清单、餐厅和到访集合
    """

    def __init__(self, session: Session):
        """
        Args:
            session: SQLModel 数据库会话
        """
        self.session = session

    # ==================== 清单 ====================

    def list_ids_for_user(self, user_id: int) -> Set[int]:
        """用户有任意协作者行的清单 ID 集合"""
        statement = select(ListCollaborator.list_id).where(ListCollaborator.user_id == user_id)
        return set(self.session.exec(statement).all())

    def get_list_collaborator(self, list_id: int, user_id: int):
        statement = select(ListCollaborator).where(
            ListCollaborator.list_id == list_id,
            ListCollaborator.user_id == user_id
        )
        return self.session.exec(statement).first()

    def can_view_list(self, list_id: int, user_id: int) -> bool:
        """清单存在且用户是其协作者（任意角色）"""
        if self.session.get(RestaurantList, list_id) is None:
            return False
        return self.get_list_collaborator(list_id, user_id) is not None

    def is_list_owner(self, list_id: int, user_id: int) -> bool:
        """清单存在且用户持有 is_owner=True 的协作者行"""
        if self.session.get(RestaurantList, list_id) is None:
            return False
        collaborator = self.get_list_collaborator(list_id, user_id)
        return collaborator is not None and collaborator.is_owner

    # ==================== 餐厅 ====================

    def restaurant_ids_for_lists(self, list_ids: Iterable[int]) -> Set[int]:
        """指定清单中出现过的餐厅 ID 集合"""
        list_ids = list(list_ids)
        if not list_ids:
            return set()
        statement = select(RestaurantInList.restaurant_id).where(
            col(RestaurantInList.list_id).in_(list_ids)
        )
        return set(self.session.exec(statement).all())

    def restaurant_ids_for_user(self, user_id: int) -> Set[int]:
        """通过用户的清单可达的餐厅 ID 集合"""
        return self.restaurant_ids_for_lists(self.list_ids_for_user(user_id))

    # ==================== 到访 ====================

    def visit_ids_for_user(self, user_id: int) -> Set[int]:
        """用户有协作者行的到访 ID 集合"""
        statement = select(VisitCollaborator.visit_id).where(VisitCollaborator.user_id == user_id)
        return set(self.session.exec(statement).all())

    def can_access_visit(self, visit_id: int, user_id: int) -> bool:
        """到访存在且用户是其协作者（任意角色）"""
        if self.session.get(Visit, visit_id) is None:
            return False
        statement = select(VisitCollaborator).where(
            VisitCollaborator.visit_id == visit_id,
            VisitCollaborator.user_id == user_id
        )
        return self.session.exec(statement).first() is not None
