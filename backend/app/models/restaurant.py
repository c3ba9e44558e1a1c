"""
餐厅域模型 - 餐厅表与清单成员表
"""

from typing import Optional
from sqlmodel import Field
from sqlalchemy import UniqueConstraint

from .base import CreatedAtModel


class Restaurant(CreatedAtModel, table=True):
    """
    餐厅表
    全局去重实体，以外部地点 ID（place_id）作为去重依据
    """
    __tablename__ = "restaurants"

    # 主键
    id: Optional[int] = Field(default=None, primary_key=True)

    name: str = Field(nullable=False)

    # 外部地点 ID（唯一），重复创建时返回已有记录
    place_id: str = Field(unique=True, index=True, nullable=False)

    address: Optional[str] = Field(default=None)
    cuisine: Optional[str] = Field(default=None)
    price_level: Optional[str] = Field(default=None)
    rating: Optional[str] = Field(default=None)
    photo_url: Optional[str] = Field(default=None)


class RestaurantInList(CreatedAtModel, table=True):
    """
    清单成员表
    把餐厅放入清单的有序关联行，order 在清单范围内排序
    """
    __tablename__ = "restaurants_in_lists"

    # 复合唯一约束：同一餐厅在同一清单只出现一次
    __table_args__ = (UniqueConstraint("list_id", "restaurant_id", name="uix_list_restaurant"),)

    # 主键
    id: Optional[int] = Field(default=None, primary_key=True)

    list_id: int = Field(foreign_key="lists.id", index=True, nullable=False)

    restaurant_id: int = Field(foreign_key="restaurants.id", index=True, nullable=False)

    # 清单内排序值，重排后保证从 0 开始连续
    order: int = Field(default=0, nullable=False)
