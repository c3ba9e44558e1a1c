"""
数据库初始化脚本
负责创建引擎、表结构以及开发环境的演示数据
"""

import os
from typing import List, Optional

from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine, select

# 导入所有表模型，确保 metadata 中注册了全部表
from app.models import (
    User, Friendship, FriendshipStatus,
    RestaurantList, ListCollaborator,
    Restaurant, RestaurantInList,
    Visit, VisitCollaborator, Note, Photo,
    Activity
)


# 新用户自动拥有的默认清单
DEFAULT_LIST_TITLE = "My Restaurants"
DEFAULT_LIST_DESCRIPTION = "Your default collection of restaurants"

# 开发环境下自动与新用户互为好友的演示账号
DEMO_FRIENDS = [
    {
        "username": "alex_foodie",
        "name": "Alex Johnson",
        "email": "alex@example.com",
        "avatar": "https://randomuser.me/api/portraits/men/32.jpg"
    },
    {
        "username": "sara_eats",
        "name": "Sara Williams",
        "email": "sara@example.com",
        "avatar": "https://randomuser.me/api/portraits/women/44.jpg"
    },
    {
        "username": "mike_chef",
        "name": "Mike Chen",
        "email": "mike@example.com",
        "avatar": "https://randomuser.me/api/portraits/men/68.jpg"
    }
]
DEMO_FRIEND_PASSWORD = "password123"


def get_database_url() -> str:
    """
    获取数据库连接 URL
    优先使用环境变量 DATABASE_URL，否则使用内存 SQLite
    """
    return os.environ.get("DATABASE_URL", "sqlite://")


def get_app_env() -> str:
    """获取运行环境（APP_ENV），默认 development"""
    return os.environ.get("APP_ENV", "development").strip().lower()


def is_demo_seeding_enabled() -> bool:
    """非 production 环境下为新用户创建演示好友"""
    return get_app_env() != "production"


def is_sql_echo_enabled() -> bool:
    return os.environ.get("SQL_ECHO", "").strip().lower() in ("1", "true", "yes")


def get_engine(database_url: Optional[str] = None):
    """
    创建并返回数据库引擎

    内存 SQLite 使用 StaticPool：所有 Session 共享同一个连接，
    否则每个连接都会看到一个空库
    """
    database_url = database_url or get_database_url()
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=is_sql_echo_enabled(), **kwargs)
    return create_engine(database_url, echo=is_sql_echo_enabled())


def create_tables(engine) -> None:
    """
    创建所有数据库表
    SQLModel 会自动根据模型创建表结构
    """
    SQLModel.metadata.create_all(engine)
    print(f"Database tables created successfully at {engine.url}")


def ensure_demo_friends(session: Session, user_id: int) -> List[User]:
    """
    确保演示账号存在，并与指定用户建立已接受的好友关系

    演示账号本身也会拥有默认清单；已存在的好友关系（任意方向）不会重复创建。
    只 flush 不 commit，由调用方决定提交时机。

    Args:
        session: 数据库会话
        user_id: 新注册的用户 ID

    Returns:
        演示好友 User 列表
    """
    friends = []
    for friend_data in DEMO_FRIENDS:
        statement = select(User).where(User.username == friend_data["username"])
        friend = session.exec(statement).first()

        if friend is None:
            friend = User(password=DEMO_FRIEND_PASSWORD, **friend_data)
            session.add(friend)
            session.flush()
            create_default_list(session, friend.id)
            print(f"Created demo user '{friend.username}' (ID: {friend.id})")

        if friend.id == user_id:
            continue

        statement = select(Friendship).where(
            ((Friendship.requester_id == user_id) & (Friendship.recipient_id == friend.id))
            | ((Friendship.requester_id == friend.id) & (Friendship.recipient_id == user_id))
        )
        if session.exec(statement).first() is None:
            session.add(Friendship(
                requester_id=user_id,
                recipient_id=friend.id,
                status=FriendshipStatus.ACCEPTED
            ))
        friends.append(friend)

    session.flush()
    return friends


def create_default_list(session: Session, user_id: int) -> RestaurantList:
    """
    为用户创建默认清单 "My Restaurants" 及其所有者协作者行
    只 flush 不 commit，与用户行在同一事务中提交
    """
    default_list = RestaurantList(
        title=DEFAULT_LIST_TITLE,
        description=DEFAULT_LIST_DESCRIPTION
    )
    session.add(default_list)
    session.flush()
    session.add(ListCollaborator(list_id=default_list.id, user_id=user_id, is_owner=True))
    session.flush()
    return default_list


def create_default_user(session: Session) -> User:
    """
    创建开发用的演示用户 'demo'
    如果用户已存在，则返回现有用户
    """
    statement = select(User).where(User.username == "demo")
    result = session.exec(statement).first()

    if result:
        print(f"Demo user 'demo' already exists (ID: {result.id})")
        return result

    demo_user = User(
        username="demo",
        name="Demo User",
        email="demo@example.com",
        password="password"
    )
    session.add(demo_user)
    session.flush()
    create_default_list(session, demo_user.id)
    ensure_demo_friends(session, demo_user.id)
    session.commit()
    session.refresh(demo_user)
    print(f"Created demo user 'demo' (ID: {demo_user.id})")
    return demo_user


def create_default_data(session: Session) -> None:
    """
    创建开发环境的默认数据
    包括演示用户、其默认清单和演示好友
    """
    print("\n=== Creating default data ===")
    create_default_user(session)
    print("=== Default data creation completed ===\n")


def init_db(database_url: Optional[str] = None, with_default_data: Optional[bool] = None):
    """
    完整的数据库初始化流程
    1. 创建数据库引擎
    2. 创建所有表结构
    3. 开发环境下创建默认数据

    Returns:
        初始化完成的引擎
    """
    print("\n=== Initializing database ===")

    engine = get_engine(database_url)
    create_tables(engine)

    if with_default_data is None:
        with_default_data = is_demo_seeding_enabled()
    if with_default_data:
        with Session(engine) as session:
            create_default_data(session)

    print("=== Database initialization completed ===\n")
    return engine


if __name__ == "__main__":
    init_db()
