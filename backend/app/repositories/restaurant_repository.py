"""
餐厅与清单成员 Repository
提供 restaurants 和 restaurants_in_lists 的增删改查操作，支持清单内排序
"""

from typing import Dict, List, Optional, Sequence

from sqlalchemy import func
from sqlmodel import Session, select, col

from app.models.restaurant import Restaurant, RestaurantInList
from app.models.restaurant_list import RestaurantList
from app.repositories.access import AccessPolicy
from app.schemas.inputs import RestaurantCreate
from app.schemas.views import RestaurantWithLists, ListRef


class RestaurantRepository:
    """
    餐厅数据访问对象

    餐厅是全局去重实体，可见性总是相对调用者计算：
    只有出现在调用者某个清单里的餐厅才可见，附带的清单也只包含调用者可见的那些
    """

    def __init__(self, session: Session):
        """
        初始化 Repository

        Args:
            session: SQLModel 数据库会话
        """
        self.session = session
        self.access = AccessPolicy(session)

    # ==================== Restaurant 操作 ====================

    def get_by_id(self, restaurant_id: int) -> Optional[Restaurant]:
        return self.session.get(Restaurant, restaurant_id)

    def get_by_place_id(self, place_id: str) -> Optional[Restaurant]:
        statement = select(Restaurant).where(Restaurant.place_id == place_id)
        return self.session.exec(statement).first()

    def create_or_get(self, fields: RestaurantCreate) -> Restaurant:
        """
        按 place_id 去重创建餐厅

        已存在时原样返回库中记录，忽略本次传入的其他字段

        Args:
            fields: 餐厅字段

        Returns:
            已存在的或新创建的 Restaurant 对象
        """
        existing = self.get_by_place_id(fields.place_id)
        if existing:
            return existing

        restaurant = Restaurant(**fields.model_dump())
        self.session.add(restaurant)
        self.session.commit()
        self.session.refresh(restaurant)
        return restaurant

    def get_by_user(self, user_id: int) -> List[RestaurantWithLists]:
        """
        获取通过用户清单可达的所有餐厅

        Args:
            user_id: 用户 ID

        Returns:
            RestaurantWithLists 列表，lists 为该用户包含此餐厅的清单
        """
        list_refs = self._visible_list_refs(self.access.list_ids_for_user(user_id))
        if not list_refs:
            return []

        statement = select(Restaurant).where(
            col(Restaurant.id).in_(list(list_refs.keys()))
        ).order_by(col(Restaurant.id).asc())
        return [
            RestaurantWithLists(**restaurant.model_dump(), lists=list_refs[restaurant.id])
            for restaurant in self.session.exec(statement).all()
        ]

    def get_details(self, restaurant_id: int, user_id: int) -> Optional[RestaurantWithLists]:
        """
        获取餐厅详情

        Returns:
            RestaurantWithLists（lists 仅含调用者可见的清单），
            餐厅不存在或不在调用者任何清单中时返回 None
        """
        restaurant = self.get_by_id(restaurant_id)
        if restaurant is None:
            return None

        list_refs = self._visible_list_refs(
            self.access.list_ids_for_user(user_id),
            restaurant_id=restaurant_id
        )
        if restaurant_id not in list_refs:
            return None
        return RestaurantWithLists(**restaurant.model_dump(), lists=list_refs[restaurant_id])

    # ==================== RestaurantInList 操作 ====================

    def get_membership(self, list_id: int, restaurant_id: int) -> Optional[RestaurantInList]:
        statement = select(RestaurantInList).where(
            RestaurantInList.list_id == list_id,
            RestaurantInList.restaurant_id == restaurant_id
        )
        return self.session.exec(statement).first()

    def get_memberships(self, list_id: int) -> List[RestaurantInList]:
        """获取清单的所有成员行，按 order 正序（相同 order 按行 ID）"""
        statement = select(RestaurantInList).where(
            RestaurantInList.list_id == list_id
        ).order_by(col(RestaurantInList.order).asc(), col(RestaurantInList.id).asc())
        return list(self.session.exec(statement).all())

    def get_by_list(self, list_id: int, user_id: int) -> List[RestaurantWithLists]:
        """
        获取清单内的餐厅，按 order 正序

        Returns:
            RestaurantWithLists 列表，不存在或无权限返回空列表
        """
        if not self.access.can_view_list(list_id, user_id):
            return []

        restaurant_list = self.session.get(RestaurantList, list_id)
        result = []
        for membership in self.get_memberships(list_id):
            restaurant = self.get_by_id(membership.restaurant_id)
            if restaurant is None:
                continue
            result.append(RestaurantWithLists(
                **restaurant.model_dump(),
                lists=[ListRef(list_id=list_id, list_title=restaurant_list.title)],
                order=membership.order
            ))
        return result

    def add_to_list(self, list_id: int, restaurant_id: int, user_id: int) -> Optional[RestaurantInList]:
        """
        把餐厅加入清单

        已在清单中时返回已有成员行；新行的 order 为清单内最大 order + 1（空清单为 0）

        Args:
            list_id: 清单 ID
            restaurant_id: 餐厅 ID
            user_id: 操作用户（任意角色的协作者）

        Returns:
            RestaurantInList 对象，清单或餐厅不存在、无权限时返回 None
        """
        if not self.access.can_view_list(list_id, user_id):
            return None
        if self.get_by_id(restaurant_id) is None:
            return None

        existing = self.get_membership(list_id, restaurant_id)
        if existing:
            return existing

        statement = select(func.max(RestaurantInList.order)).where(RestaurantInList.list_id == list_id)
        max_order = self.session.exec(statement).one()
        membership = RestaurantInList(
            list_id=list_id,
            restaurant_id=restaurant_id,
            order=(max_order if max_order is not None else -1) + 1
        )
        self.session.add(membership)
        self.session.commit()
        self.session.refresh(membership)
        return membership

    def remove_from_list(self, list_id: int, restaurant_id: int, user_id: int) -> bool:
        """
        把餐厅移出清单，其余成员的 order 不重新编号

        Returns:
            删除成功返回 True，无权限或不在清单中返回 False
        """
        if not self.access.can_view_list(list_id, user_id):
            return False

        membership = self.get_membership(list_id, restaurant_id)
        if membership:
            self.session.delete(membership)
            self.session.commit()
            return True
        return False

    def reorder(self, list_id: int, restaurant_ids: Sequence[int], user_id: int) -> bool:
        """
        按给定顺序重排清单

        先校验整个输入（每个 ID 都在清单中、没有重复），校验失败不修改任何行。
        order 取序列下标；未出现在序列中的成员保持原有相对顺序排在后面，
        保证整个清单的 order 从 0 开始连续。

        Args:
            list_id: 清单 ID
            restaurant_ids: 新顺序的餐厅 ID 序列
            user_id: 操作用户（任意角色的协作者）

        Returns:
            成功返回 True，否则返回 False
        """
        if not self.access.can_view_list(list_id, user_id):
            return False

        memberships = self.get_memberships(list_id)
        by_restaurant: Dict[int, RestaurantInList] = {m.restaurant_id: m for m in memberships}

        if len(set(restaurant_ids)) != len(restaurant_ids):
            print(f"[RestaurantRepository] 重排被拒绝：序列中有重复的餐厅 (List ID: {list_id})")
            return False
        missing = [rid for rid in restaurant_ids if rid not in by_restaurant]
        if missing:
            print(f"[RestaurantRepository] 重排被拒绝：餐厅 {missing} 不在清单中 (List ID: {list_id})")
            return False

        requested = set(restaurant_ids)
        ordered = [by_restaurant[rid] for rid in restaurant_ids]
        ordered.extend(m for m in memberships if m.restaurant_id not in requested)

        for index, membership in enumerate(ordered):
            membership.order = index
            self.session.add(membership)
        self.session.commit()
        return True

    def _visible_list_refs(
        self,
        list_ids,
        restaurant_id: Optional[int] = None
    ) -> Dict[int, List[ListRef]]:
        """
        计算餐厅 -> 可见清单引用的映射

        Args:
            list_ids: 调用者可见的清单 ID 集合
            restaurant_id: 只计算指定餐厅（可选）
        """
        list_ids = list(list_ids)
        if not list_ids:
            return {}

        statement = select(RestaurantInList, RestaurantList).join(
            RestaurantList, col(RestaurantList.id) == col(RestaurantInList.list_id)
        ).where(col(RestaurantInList.list_id).in_(list_ids))
        if restaurant_id is not None:
            statement = statement.where(RestaurantInList.restaurant_id == restaurant_id)
        statement = statement.order_by(col(RestaurantInList.id).asc())

        refs: Dict[int, List[ListRef]] = {}
        for membership, restaurant_list in self.session.exec(statement).all():
            refs.setdefault(membership.restaurant_id, []).append(
                ListRef(list_id=restaurant_list.id, list_title=restaurant_list.title)
            )
        return refs
