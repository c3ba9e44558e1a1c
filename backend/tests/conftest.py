"""
Pytest 测试配置
提供测试数据库、Repository、MemStorage 和测试用户等测试基础设施
"""

import sys
from pathlib import Path
from typing import Generator

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

# 添加项目根目录到 sys.path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app.db.init_db import create_tables
from app.models import User, Restaurant
from app.schemas import UserCreate, RestaurantCreate
from app.services.storage_service import MemStorage


# ==================== 数据库 Fixtures ====================

@pytest.fixture(scope="function")
def test_db_engine():
    """
    创建测试用的内存数据库引擎
    每个测试函数都会获得一个全新的数据库
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )

    # 创建所有表
    create_tables(engine)

    yield engine

    # 测试结束后自动清理（内存数据库自动销毁）


@pytest.fixture(scope="function")
def test_db_session(test_db_engine) -> Generator[Session, None, None]:
    """
    创建测试用的数据库会话
    """
    with Session(test_db_engine, expire_on_commit=False) as session:
        yield session


# ==================== Repository Fixtures ====================

@pytest.fixture(scope="function")
def user_repository(test_db_session: Session):
    from app.repositories.user_repository import UserRepository
    return UserRepository(test_db_session)


@pytest.fixture(scope="function")
def friendship_repository(test_db_session: Session):
    from app.repositories.friendship_repository import FriendshipRepository
    return FriendshipRepository(test_db_session)


@pytest.fixture(scope="function")
def list_repository(test_db_session: Session):
    from app.repositories.list_repository import ListRepository
    return ListRepository(test_db_session)


@pytest.fixture(scope="function")
def restaurant_repository(test_db_session: Session):
    from app.repositories.restaurant_repository import RestaurantRepository
    return RestaurantRepository(test_db_session)


@pytest.fixture(scope="function")
def visit_repository(test_db_session: Session):
    from app.repositories.visit_repository import VisitRepository
    return VisitRepository(test_db_session)


@pytest.fixture(scope="function")
def activity_repository(test_db_session: Session):
    from app.repositories.activity_repository import ActivityRepository
    return ActivityRepository(test_db_session)


@pytest.fixture(scope="function")
def stats_repository(test_db_session: Session):
    from app.repositories.stats_repository import StatsRepository
    return StatsRepository(test_db_session)


# ==================== 测试数据 Fixtures ====================

def make_user_fields(username: str, name: str = None) -> UserCreate:
    """构造测试用户字段"""
    return UserCreate(
        username=username,
        name=name or username.capitalize(),
        email=f"{username}@example.com"
    )


@pytest.fixture(scope="function")
def test_user(user_repository) -> User:
    """
    创建测试用户（自带默认清单）
    """
    return user_repository.create(make_user_fields("alice", "Alice Wong"))


@pytest.fixture(scope="function")
def other_user(user_repository) -> User:
    """
    创建第二个测试用户
    """
    return user_repository.create(make_user_fields("bob", "Bob Smith"))


@pytest.fixture(scope="function")
def test_restaurant(restaurant_repository) -> Restaurant:
    """
    创建测试餐厅
    """
    return restaurant_repository.create_or_get(RestaurantCreate(
        name="Noodle Bar",
        place_id="place-noodle-bar",
        cuisine="Ramen",
        price_level="$$"
    ))


# ==================== MemStorage Fixtures ====================

@pytest.fixture(scope="function")
def storage() -> MemStorage:
    """
    创建关闭演示好友的 MemStorage
    """
    return MemStorage(database_url="sqlite://", seed_demo_friends=False)


@pytest.fixture(scope="function")
def alice(storage: MemStorage) -> User:
    return storage.create_user(make_user_fields("alice", "Alice Wong"))


@pytest.fixture(scope="function")
def bob(storage: MemStorage) -> User:
    return storage.create_user(make_user_fields("bob", "Bob Smith"))


@pytest.fixture(scope="function")
def carol(storage: MemStorage) -> User:
    return storage.create_user(make_user_fields("carol", "Carol Diaz"))


# ==================== Pytest 配置 ====================

def pytest_configure(config):
    """
    Pytest 初始化配置
    """
    # 标记测试分类
    config.addinivalue_line(
        "markers", "unit: Unit tests"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests"
    )


@pytest.fixture(scope="function")
def user_fields():
    """返回构造测试用户字段的工厂函数"""
    return make_user_fields
