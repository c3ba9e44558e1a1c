"""
好友关系 Repository
提供 friendships 表的增删改查操作
"""

from typing import List, Optional

from sqlmodel import Session, select, col, or_, and_

from app.models.base import utc_now
from app.models.friendship import Friendship, FriendshipStatus
from app.models.user import User
from app.schemas.views import FriendWithDetails


class FriendshipRepository:
    """
    好友关系数据访问对象

    同一对用户（无序）最多一条记录；接受后双向可见，拒绝后直接删除
    """

    def __init__(self, session: Session):
        """
        初始化 Repository

        Args:
            session: SQLModel 数据库会话
        """
        self.session = session

    def get_between(self, user_a: int, user_b: int) -> Optional[Friendship]:
        """
        获取两个用户之间的关系记录（任意方向、任意状态）

        Returns:
            Friendship 对象，不存在则返回 None
        """
        statement = select(Friendship).where(
            or_(
                and_(Friendship.requester_id == user_a, Friendship.recipient_id == user_b),
                and_(Friendship.requester_id == user_b, Friendship.recipient_id == user_a)
            )
        )
        return self.session.exec(statement).first()

    def get_pending(self, requester_id: int, recipient_id: int) -> Optional[Friendship]:
        """获取 requester -> recipient 的第一条待处理请求"""
        statement = select(Friendship).where(
            Friendship.requester_id == requester_id,
            Friendship.recipient_id == recipient_id,
            Friendship.status == FriendshipStatus.PENDING
        ).order_by(col(Friendship.id).asc())
        return self.session.exec(statement).first()

    def send_request(self, from_user_id: int, to_user_id: int) -> Optional[Friendship]:
        """
        发送好友请求

        以下情况返回 None：任一用户不存在、给自己发请求、
        两人之间已有任意方向的待处理或已接受记录

        Args:
            from_user_id: 发起方
            to_user_id: 接收方

        Returns:
            新建的待处理 Friendship，失败返回 None
        """
        if from_user_id == to_user_id:
            return None
        if self.session.get(User, from_user_id) is None or self.session.get(User, to_user_id) is None:
            return None
        if self.get_between(from_user_id, to_user_id) is not None:
            return None

        friendship = Friendship(
            requester_id=from_user_id,
            recipient_id=to_user_id,
            status=FriendshipStatus.PENDING
        )
        self.session.add(friendship)
        self.session.commit()
        self.session.refresh(friendship)
        return friendship

    def accept_request(self, accepter_id: int, requester_id: int) -> Optional[Friendship]:
        """
        接受 requester 发给 accepter 的待处理请求

        Returns:
            更新后的 Friendship，没有待处理请求返回 None
        """
        friendship = self.get_pending(requester_id, accepter_id)
        if friendship:
            friendship.status = FriendshipStatus.ACCEPTED
            friendship.updated_at = utc_now()
            self.session.add(friendship)
            self.session.commit()
            self.session.refresh(friendship)
        return friendship

    def reject_request(self, accepter_id: int, requester_id: int) -> bool:
        """
        拒绝并删除 requester 发给 accepter 的待处理请求

        Returns:
            删除成功返回 True，没有待处理请求返回 False
        """
        friendship = self.get_pending(requester_id, accepter_id)
        if friendship:
            self.session.delete(friendship)
            self.session.commit()
            return True
        return False

    def get_friends(self, user_id: int) -> List[FriendWithDetails]:
        """
        获取用户的所有好友（已接受，不区分谁是发起方）

        Args:
            user_id: 用户 ID

        Returns:
            FriendWithDetails 列表，按关系创建顺序
        """
        statement = select(Friendship).where(
            Friendship.status == FriendshipStatus.ACCEPTED,
            or_(Friendship.requester_id == user_id, Friendship.recipient_id == user_id)
        ).order_by(col(Friendship.id).asc())

        friends = []
        for friendship in self.session.exec(statement).all():
            other_id = (
                friendship.recipient_id if friendship.requester_id == user_id
                else friendship.requester_id
            )
            friends.append(self._to_friend(other_id, FriendshipStatus.ACCEPTED))
        return friends

    def get_incoming_requests(self, user_id: int) -> List[FriendWithDetails]:
        """
        获取发给用户的所有待处理请求，附带发起方信息

        Args:
            user_id: 接收方用户 ID

        Returns:
            FriendWithDetails 列表（status 为 pending）
        """
        statement = select(Friendship).where(
            Friendship.status == FriendshipStatus.PENDING,
            Friendship.recipient_id == user_id
        ).order_by(col(Friendship.id).asc())
        return [
            self._to_friend(friendship.requester_id, FriendshipStatus.PENDING)
            for friendship in self.session.exec(statement).all()
        ]

    def _to_friend(self, user_id: int, status: FriendshipStatus) -> FriendWithDetails:
        user = self.session.get(User, user_id)
        if user is None:
            # 用户行缺失时仍返回占位信息，不中断列表
            return FriendWithDetails(
                id=user_id,
                username="Unknown",
                name="Unknown User",
                email="unknown@example.com",
                status=status.value
            )
        return FriendWithDetails(
            id=user.id,
            username=user.username,
            name=user.name,
            email=user.email,
            avatar=user.avatar,
            status=status.value
        )
