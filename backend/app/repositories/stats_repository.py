"""
统计 Repository
提供仪表盘的用户统计数据
"""

from sqlalchemy import func
from sqlmodel import Session, select, col

from app.models.restaurant_list import ListCollaborator
from app.models.visit import VisitCollaborator
from app.repositories.access import AccessPolicy
from app.schemas.views import UserStats


class StatsRepository:
    """统计数据访问对象"""

    def __init__(self, session: Session):
        """
        初始化 Repository

        Args:
            session: SQLModel 数据库会话
        """
        self.session = session
        self.access = AccessPolicy(session)

    def get_user_stats(self, user_id: int) -> UserStats:
        """
        计算用户统计

        - total_lists: 用户参与的清单数
        - total_restaurants: 这些清单中不同餐厅数
        - total_visits: 用户的到访协作者行数
        - total_collaborators: 这些清单上出现过的其他用户数

        Args:
            user_id: 用户 ID

        Returns:
            UserStats 对象
        """
        list_ids = self.access.list_ids_for_user(user_id)
        restaurant_ids = self.access.restaurant_ids_for_lists(list_ids)

        visits_statement = select(func.count()).select_from(VisitCollaborator).where(
            VisitCollaborator.user_id == user_id
        )
        total_visits = self.session.exec(visits_statement).one()

        collaborator_ids = set()
        if list_ids:
            statement = select(ListCollaborator.user_id).where(
                col(ListCollaborator.list_id).in_(list(list_ids)),
                ListCollaborator.user_id != user_id
            )
            collaborator_ids = set(self.session.exec(statement).all())

        return UserStats(
            total_lists=len(list_ids),
            total_restaurants=len(restaurant_ids),
            total_visits=total_visits,
            total_collaborators=len(collaborator_ids)
        )
