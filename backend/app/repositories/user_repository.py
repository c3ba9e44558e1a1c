"""
用户管理 Repository
提供 users 表的增删改查操作
"""

from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlmodel import Session, select, col, or_

from app.db.init_db import create_default_list, ensure_demo_friends
from app.models.user import User
from app.repositories.exceptions import UserConflictError
from app.schemas.inputs import UserCreate
from app.schemas.views import UserSummary


# 用户搜索的最短查询长度和最大返回数
SEARCH_MIN_QUERY_LENGTH = 2
SEARCH_LIMIT = 10


class UserRepository:
    """
    用户数据访问对象
    封装所有与 users 表相关的数据库操作
    """

    def __init__(self, session: Session):
        """
        初始化 Repository

        Args:
            session: SQLModel 数据库会话
        """
        self.session = session

    def get_by_username(self, username: str) -> Optional[User]:
        """
        根据用户名获取用户

        Args:
            username: 用户名

        Returns:
            User 对象，不存在则返回 None
        """
        statement = select(User).where(User.username == username)
        return self.session.exec(statement).first()

    def get_by_id(self, user_id: int) -> Optional[User]:
        """
        根据 ID 获取用户

        Args:
            user_id: 用户 ID

        Returns:
            User 对象，不存在则返回 None
        """
        return self.session.get(User, user_id)

    def get_by_external_id(self, external_auth_id: str) -> Optional[User]:
        """
        根据第三方认证 ID 获取用户

        Args:
            external_auth_id: 第三方认证 ID

        Returns:
            User 对象，不存在则返回 None
        """
        statement = select(User).where(User.external_auth_id == external_auth_id)
        return self.session.exec(statement).first()

    def create(self, fields: UserCreate, seed_demo_friends: bool = False) -> User:
        """
        创建新用户，并在同一事务中创建默认清单

        默认清单是后续"添加餐厅"流程的前提，两者要么一起提交，要么都不提交。

        Args:
            fields: 用户字段
            seed_demo_friends: 是否同时建立演示好友关系（开发环境）

        Returns:
            创建的 User 对象

        Raises:
            UserConflictError: 用户名或第三方认证 ID 已存在
        """
        if self.get_by_username(fields.username) is not None:
            raise UserConflictError("username", fields.username)
        if fields.external_auth_id is not None and self.get_by_external_id(fields.external_auth_id) is not None:
            raise UserConflictError("external_auth_id", fields.external_auth_id)

        print(f"[UserRepository] 检测到新用户 '{fields.username}'，正在注册...")
        user = User(**fields.model_dump())
        self.session.add(user)
        self.session.flush()

        default_list = create_default_list(self.session, user.id)
        print(f"[UserRepository] 默认清单已创建 (List ID: {default_list.id})")

        if seed_demo_friends:
            friends = ensure_demo_friends(self.session, user.id)
            print(f"[UserRepository] 已建立 {len(friends)} 个演示好友关系")

        self.session.commit()
        self.session.refresh(user)
        print(f"[UserRepository] 新用户创建成功 (ID: {user.id})")
        return user

    def update_avatar(self, user_id: int, avatar: Optional[str]) -> Optional[User]:
        """
        更新用户头像（唯一可修改的身份字段）

        Args:
            user_id: 用户 ID
            avatar: 新头像 URL，None 表示清除

        Returns:
            更新后的 User 对象，不存在则返回 None
        """
        user = self.get_by_id(user_id)
        if user:
            user.avatar = avatar
            self.session.add(user)
            self.session.commit()
            self.session.refresh(user)
        return user

    def search(self, query: str, exclude_user_id: int) -> List[User]:
        """
        按用户名、展示名称、邮箱做大小写不敏感的子串搜索

        Args:
            query: 查询串，去除首尾空白后少于 2 个字符时直接返回空列表
            exclude_user_id: 发起搜索的用户，不出现在结果中

        Returns:
            最多 10 个 User 对象
        """
        if not query or len(query.strip()) < SEARCH_MIN_QUERY_LENGTH:
            return []

        needle = query.lower()
        statement = select(User).where(
            User.id != exclude_user_id,
            or_(
                func.lower(col(User.username)).contains(needle, autoescape=True),
                func.lower(col(User.name)).contains(needle, autoescape=True),
                func.lower(col(User.email)).contains(needle, autoescape=True)
            )
        ).order_by(col(User.id).asc()).limit(SEARCH_LIMIT)
        return list(self.session.exec(statement).all())

    def get_summary(self, user_id: int) -> UserSummary:
        """获取展示用的用户摘要，用户不存在时返回 "Unknown User" """
        user = self.get_by_id(user_id)
        if user is None:
            return UserSummary()
        return UserSummary(name=user.name, avatar=user.avatar)

    def get_summaries(self, user_ids: Iterable[int]) -> Dict[int, UserSummary]:
        """批量获取用户摘要，键为用户 ID"""
        ids = set(user_ids)
        summaries = {user_id: UserSummary() for user_id in ids}
        if not ids:
            return summaries
        statement = select(User).where(col(User.id).in_(list(ids)))
        for user in self.session.exec(statement).all():
            summaries[user.id] = UserSummary(name=user.name, avatar=user.avatar)
        return summaries
