"""
Repository 单元测试
验证各 Repository 的 CRUD 操作和访问控制
"""

import pytest
from sqlmodel import select

from app.db.init_db import DEFAULT_LIST_TITLE
from app.models import (
    ActivityType, FriendshipStatus, ListCollaborator, RestaurantInList, VisitCollaborator
)
from app.repositories.access import AccessPolicy
from app.repositories.exceptions import (
    UserConflictError, VisitNotFoundError, VisitAccessDeniedError
)
from app.schemas import (
    ListCreate, ListUpdate, RestaurantCreate, VisitCreate, NoteCreate, PhotoCreate,
    ListSharedPayload
)


def default_list_id(list_repository, user_id):
    return list_repository.get_default_list(user_id).id


class TestUserRepository:
    """测试 UserRepository"""

    def test_create_user_provisions_default_list(self, user_repository, list_repository, user_fields):
        """测试新用户自动获得默认清单"""
        user = user_repository.create(user_fields("hana"))

        lists = list_repository.get_lists_by_user(user.id)
        assert len(lists) == 1
        assert lists[0].title == DEFAULT_LIST_TITLE
        assert lists[0].collaborators[0].is_owner is True

    def test_create_duplicate_username(self, user_repository, test_user, user_fields):
        """测试重复用户名抛出 UserConflictError"""
        with pytest.raises(UserConflictError):
            user_repository.create(user_fields("alice"))

    def test_create_duplicate_external_id(self, user_repository, user_fields):
        first = user_fields("ivan")
        first.external_auth_id = "ext-1"
        user_repository.create(first)

        second = user_fields("ivy")
        second.external_auth_id = "ext-1"
        with pytest.raises(UserConflictError):
            user_repository.create(second)

    def test_point_lookups(self, user_repository, test_user):
        """测试点查询，未命中返回 None"""
        assert user_repository.get_by_id(test_user.id).username == "alice"
        assert user_repository.get_by_username("alice").id == test_user.id
        assert user_repository.get_by_username("nobody") is None
        assert user_repository.get_by_id(9999) is None
        assert user_repository.get_by_external_id("missing") is None

    def test_get_by_external_id(self, user_repository, user_fields):
        fields = user_fields("jade")
        fields.external_auth_id = "firebase-uid-42"
        user = user_repository.create(fields)

        assert user_repository.get_by_external_id("firebase-uid-42").id == user.id

    def test_update_avatar(self, user_repository, test_user):
        updated = user_repository.update_avatar(test_user.id, "https://img.example.com/a.png")

        assert updated.avatar == "https://img.example.com/a.png"
        assert user_repository.update_avatar(9999, "x") is None

    def test_search_users(self, user_repository, test_user, other_user):
        """测试大小写不敏感的子串搜索，并排除自己"""
        assert [u.id for u in user_repository.search("BOB", test_user.id)] == [other_user.id]
        assert [u.id for u in user_repository.search("smith", test_user.id)] == [other_user.id]
        assert [u.id for u in user_repository.search("example.com", test_user.id)] == [other_user.id]

    def test_search_short_query(self, user_repository, test_user, other_user):
        """测试少于 2 个字符的查询返回空列表"""
        assert user_repository.search("b", test_user.id) == []
        assert user_repository.search("  b ", test_user.id) == []
        assert user_repository.search("", test_user.id) == []

    def test_search_limit(self, user_repository, test_user, user_fields):
        """测试搜索最多返回 10 条"""
        for i in range(12):
            user_repository.create(user_fields(f"foodie{i}"))

        assert len(user_repository.search("foodie", test_user.id)) == 10

    def test_search_escapes_wildcards(self, user_repository, test_user, other_user):
        assert user_repository.search("%%", test_user.id) == []


class TestFriendshipRepository:
    """测试 FriendshipRepository"""

    def test_send_request(self, friendship_repository, test_user, other_user):
        friendship = friendship_repository.send_request(test_user.id, other_user.id)

        assert friendship.status == FriendshipStatus.PENDING
        assert friendship.requester_id == test_user.id

    def test_send_request_unknown_user(self, friendship_repository, test_user):
        assert friendship_repository.send_request(test_user.id, 9999) is None

    def test_send_request_to_self(self, friendship_repository, test_user):
        assert friendship_repository.send_request(test_user.id, test_user.id) is None

    def test_send_request_duplicate_either_direction(self, friendship_repository, test_user, other_user):
        """测试任意方向已有记录时不能再发请求"""
        friendship_repository.send_request(test_user.id, other_user.id)

        assert friendship_repository.send_request(test_user.id, other_user.id) is None
        assert friendship_repository.send_request(other_user.id, test_user.id) is None

    def test_accept_request(self, friendship_repository, test_user, other_user):
        """测试接受后双方互为好友"""
        friendship_repository.send_request(test_user.id, other_user.id)

        accepted = friendship_repository.accept_request(other_user.id, test_user.id)

        assert accepted.status == FriendshipStatus.ACCEPTED
        assert [f.id for f in friendship_repository.get_friends(test_user.id)] == [other_user.id]
        assert [f.id for f in friendship_repository.get_friends(other_user.id)] == [test_user.id]

    def test_accept_requires_recipient(self, friendship_repository, test_user, other_user):
        """测试发起方不能替对方接受"""
        friendship_repository.send_request(test_user.id, other_user.id)

        assert friendship_repository.accept_request(test_user.id, other_user.id) is None

    def test_reject_request_deletes_row(self, friendship_repository, test_user, other_user):
        friendship_repository.send_request(test_user.id, other_user.id)

        assert friendship_repository.reject_request(other_user.id, test_user.id) is True
        assert friendship_repository.get_between(test_user.id, other_user.id) is None
        assert friendship_repository.reject_request(other_user.id, test_user.id) is False

    def test_rejected_pair_can_request_again(self, friendship_repository, test_user, other_user):
        friendship_repository.send_request(test_user.id, other_user.id)
        friendship_repository.reject_request(other_user.id, test_user.id)

        assert friendship_repository.send_request(other_user.id, test_user.id) is not None

    def test_get_incoming_requests(self, friendship_repository, test_user, other_user):
        """测试只返回发给自己的待处理请求"""
        friendship_repository.send_request(test_user.id, other_user.id)

        incoming = friendship_repository.get_incoming_requests(other_user.id)
        assert len(incoming) == 1
        assert incoming[0].id == test_user.id
        assert incoming[0].status == "pending"
        assert friendship_repository.get_incoming_requests(test_user.id) == []


class TestListRepository:
    """测试 ListRepository"""

    def test_create_list_with_owner(self, list_repository, test_user):
        restaurant_list = list_repository.create(ListCreate(title="Tacos"), test_user.id)

        details = list_repository.get_details(restaurant_list.id, test_user.id)
        assert details.title == "Tacos"
        assert details.restaurant_count == 0
        assert [c.user_id for c in details.collaborators if c.is_owner] == [test_user.id]

    def test_get_details_requires_access(self, list_repository, test_user, other_user):
        """测试非协作者拿到 None"""
        list_id = default_list_id(list_repository, test_user.id)

        assert list_repository.get_details(list_id, other_user.id) is None
        assert list_repository.get_details(9999, test_user.id) is None

    def test_update_list_owner_only(self, list_repository, test_user, other_user):
        list_id = default_list_id(list_repository, test_user.id)
        list_repository.share(list_id, other_user.id, False, test_user.id)

        assert list_repository.update(list_id, ListUpdate(title="Nope"), other_user.id) is None

        updated = list_repository.update(list_id, ListUpdate(title="Favourites"), test_user.id)
        assert updated.title == "Favourites"
        assert updated.description is not None  # 未设置的字段保持不变

    def test_delete_list_cascades(self, list_repository, restaurant_repository, test_db_session,
                                  test_user, test_restaurant):
        """测试删除清单级联删除协作者行和成员行"""
        doomed = list_repository.create(ListCreate(title="Old"), test_user.id)
        keeper_id = default_list_id(list_repository, test_user.id)
        restaurant_repository.add_to_list(doomed.id, test_restaurant.id, test_user.id)
        restaurant_repository.add_to_list(keeper_id, test_restaurant.id, test_user.id)

        assert list_repository.delete(doomed.id, test_user.id) is True

        assert list_repository.get_details(doomed.id, test_user.id) is None
        assert test_db_session.exec(
            select(ListCollaborator).where(ListCollaborator.list_id == doomed.id)
        ).all() == []
        assert test_db_session.exec(
            select(RestaurantInList).where(RestaurantInList.list_id == doomed.id)
        ).all() == []
        assert len(restaurant_repository.get_by_list(keeper_id, test_user.id)) == 1

    def test_delete_list_non_owner(self, list_repository, test_user, other_user):
        list_id = default_list_id(list_repository, test_user.id)
        list_repository.share(list_id, other_user.id, False, test_user.id)

        assert list_repository.delete(list_id, other_user.id) is False
        assert list_repository.get_details(list_id, test_user.id) is not None

    def test_share_list(self, list_repository, test_user, other_user):
        """测试分享后出现在对方的共享清单中"""
        list_id = default_list_id(list_repository, test_user.id)

        assert list_repository.share(list_id, other_user.id, False, test_user.id) is True

        shared = list_repository.get_shared_lists(other_user.id)
        assert [l.id for l in shared] == [list_id]
        assert list_repository.get_shared_lists(test_user.id) == []

    def test_share_list_updates_existing_row(self, list_repository, test_db_session, test_user, other_user):
        """测试重复分享原地更新 is_owner，不新增行"""
        list_id = default_list_id(list_repository, test_user.id)
        list_repository.share(list_id, other_user.id, False, test_user.id)
        list_repository.share(list_id, other_user.id, True, test_user.id)

        rows = test_db_session.exec(
            select(ListCollaborator).where(
                ListCollaborator.list_id == list_id,
                ListCollaborator.user_id == other_user.id
            )
        ).all()
        assert len(rows) == 1
        assert rows[0].is_owner is True

    def test_share_requires_owner_and_target(self, list_repository, test_user, other_user, user_fields,
                                             user_repository):
        list_id = default_list_id(list_repository, test_user.id)
        carol = user_repository.create(user_fields("carol"))
        list_repository.share(list_id, other_user.id, False, test_user.id)

        assert list_repository.share(list_id, carol.id, False, other_user.id) is False
        assert list_repository.share(list_id, 9999, False, test_user.id) is False
        assert list_repository.share(9999, carol.id, False, test_user.id) is False

    def test_share_cannot_remove_last_owner(self, list_repository, test_user, other_user):
        """测试不能把唯一的所有者降级"""
        list_id = default_list_id(list_repository, test_user.id)

        assert list_repository.share(list_id, test_user.id, False, test_user.id) is False
        assert AccessPolicy(list_repository.session).is_list_owner(list_id, test_user.id)

        list_repository.share(list_id, other_user.id, True, test_user.id)
        assert list_repository.share(list_id, test_user.id, False, other_user.id) is True


class TestRestaurantRepository:
    """测试 RestaurantRepository"""

    def test_create_or_get_dedups_by_place_id(self, restaurant_repository, test_restaurant):
        """测试相同 place_id 返回同一行，忽略新字段"""
        again = restaurant_repository.create_or_get(RestaurantCreate(
            name="Different Name",
            place_id="place-noodle-bar",
            cuisine="Pizza"
        ))

        assert again.id == test_restaurant.id
        assert again.name == "Noodle Bar"
        assert again.cuisine == "Ramen"

    def test_add_to_list_orders_from_zero(self, restaurant_repository, list_repository, test_user):
        list_id = default_list_id(list_repository, test_user.id)
        r1 = restaurant_repository.create_or_get(RestaurantCreate(name="A", place_id="a"))
        r2 = restaurant_repository.create_or_get(RestaurantCreate(name="B", place_id="b"))

        assert restaurant_repository.add_to_list(list_id, r1.id, test_user.id).order == 0
        assert restaurant_repository.add_to_list(list_id, r2.id, test_user.id).order == 1

    def test_add_to_list_existing_pair(self, restaurant_repository, list_repository, test_user, test_restaurant):
        """测试重复加入返回已有成员行"""
        list_id = default_list_id(list_repository, test_user.id)
        first = restaurant_repository.add_to_list(list_id, test_restaurant.id, test_user.id)
        second = restaurant_repository.add_to_list(list_id, test_restaurant.id, test_user.id)

        assert second.id == first.id

    def test_add_to_list_requires_access_and_restaurant(self, restaurant_repository, list_repository,
                                                        test_user, other_user, test_restaurant):
        list_id = default_list_id(list_repository, test_user.id)

        assert restaurant_repository.add_to_list(list_id, test_restaurant.id, other_user.id) is None
        assert restaurant_repository.add_to_list(list_id, 9999, test_user.id) is None

    def test_shared_collaborator_can_append(self, restaurant_repository, list_repository,
                                            test_user, other_user, test_restaurant):
        """测试非所有者协作者也可以追加餐厅"""
        list_id = default_list_id(list_repository, test_user.id)
        list_repository.share(list_id, other_user.id, False, test_user.id)

        assert restaurant_repository.add_to_list(list_id, test_restaurant.id, other_user.id) is not None

    def test_remove_keeps_gaps(self, restaurant_repository, list_repository, test_user):
        """测试移除后不重新编号"""
        list_id = default_list_id(list_repository, test_user.id)
        ids = []
        for code in "abc":
            r = restaurant_repository.create_or_get(RestaurantCreate(name=code, place_id=code))
            restaurant_repository.add_to_list(list_id, r.id, test_user.id)
            ids.append(r.id)

        assert restaurant_repository.remove_from_list(list_id, ids[1], test_user.id) is True
        assert restaurant_repository.remove_from_list(list_id, ids[1], test_user.id) is False

        assert [r.order for r in restaurant_repository.get_by_list(list_id, test_user.id)] == [0, 2]

    def test_reorder(self, restaurant_repository, list_repository, test_user):
        """测试重排后 order 连续且顺序与输入一致"""
        list_id = default_list_id(list_repository, test_user.id)
        ids = []
        for code in "abc":
            r = restaurant_repository.create_or_get(RestaurantCreate(name=code, place_id=code))
            restaurant_repository.add_to_list(list_id, r.id, test_user.id)
            ids.append(r.id)

        new_order = [ids[2], ids[0], ids[1]]
        assert restaurant_repository.reorder(list_id, new_order, test_user.id) is True

        result = restaurant_repository.get_by_list(list_id, test_user.id)
        assert [r.id for r in result] == new_order
        assert [r.order for r in result] == [0, 1, 2]

    def test_reorder_invalid_id_leaves_state(self, restaurant_repository, list_repository, test_user):
        """测试序列中有无效 ID 时不修改任何行"""
        list_id = default_list_id(list_repository, test_user.id)
        ids = []
        for code in "ab":
            r = restaurant_repository.create_or_get(RestaurantCreate(name=code, place_id=code))
            restaurant_repository.add_to_list(list_id, r.id, test_user.id)
            ids.append(r.id)

        assert restaurant_repository.reorder(list_id, [ids[1], 9999, ids[0]], test_user.id) is False
        assert restaurant_repository.reorder(list_id, [ids[1], ids[1]], test_user.id) is False

        result = restaurant_repository.get_by_list(list_id, test_user.id)
        assert [r.id for r in result] == ids
        assert [r.order for r in result] == [0, 1]

    def test_reorder_partial_sequence_stays_dense(self, restaurant_repository, list_repository, test_user):
        """测试未列出的成员排在后面，整体仍然连续"""
        list_id = default_list_id(list_repository, test_user.id)
        ids = []
        for code in "abcd":
            r = restaurant_repository.create_or_get(RestaurantCreate(name=code, place_id=code))
            restaurant_repository.add_to_list(list_id, r.id, test_user.id)
            ids.append(r.id)
        restaurant_repository.remove_from_list(list_id, ids[0], test_user.id)

        assert restaurant_repository.reorder(list_id, [ids[3]], test_user.id) is True

        result = restaurant_repository.get_by_list(list_id, test_user.id)
        assert [r.id for r in result] == [ids[3], ids[1], ids[2]]
        assert [r.order for r in result] == [0, 1, 2]

    def test_visibility_is_relative_to_caller(self, restaurant_repository, list_repository,
                                              test_user, other_user, test_restaurant):
        """测试详情只附带调用者可见的清单"""
        alice_list = default_list_id(list_repository, test_user.id)
        bob_list = default_list_id(list_repository, other_user.id)
        restaurant_repository.add_to_list(alice_list, test_restaurant.id, test_user.id)
        restaurant_repository.add_to_list(bob_list, test_restaurant.id, other_user.id)

        details = restaurant_repository.get_details(test_restaurant.id, test_user.id)
        assert [ref.list_id for ref in details.lists] == [alice_list]

        by_user = restaurant_repository.get_by_user(other_user.id)
        assert [ref.list_id for ref in by_user[0].lists] == [bob_list]

    def test_details_hidden_without_list(self, restaurant_repository, test_user, test_restaurant):
        assert restaurant_repository.get_details(test_restaurant.id, test_user.id) is None
        assert restaurant_repository.get_by_user(test_user.id) == []

    def test_get_by_list_requires_access(self, restaurant_repository, list_repository,
                                         test_user, other_user, test_restaurant):
        list_id = default_list_id(list_repository, test_user.id)
        restaurant_repository.add_to_list(list_id, test_restaurant.id, test_user.id)

        assert restaurant_repository.get_by_list(list_id, other_user.id) == []


class TestVisitRepository:
    """测试 VisitRepository"""

    def test_create_visit_with_collaborators(self, visit_repository, test_db_session,
                                             test_user, other_user, test_restaurant):
        """测试创建者为所有者，未知和重复 ID 被跳过"""
        visit = visit_repository.create(
            VisitCreate(restaurant_id=test_restaurant.id, occasion="birthday"),
            test_user.id,
            [other_user.id, 9999, other_user.id, test_user.id]
        )

        rows = test_db_session.exec(
            select(VisitCollaborator).where(VisitCollaborator.visit_id == visit.id)
        ).all()
        assert {(r.user_id, r.is_owner) for r in rows} == {(test_user.id, True), (other_user.id, False)}
        assert len(rows) == 2

    def test_create_visit_unknown_restaurant(self, visit_repository, test_user):
        assert visit_repository.create(VisitCreate(restaurant_id=9999), test_user.id) is None

    def test_get_details_requires_collaborator(self, visit_repository, test_user, other_user, test_restaurant):
        visit = visit_repository.create(VisitCreate(restaurant_id=test_restaurant.id), test_user.id)

        assert visit_repository.get_details(visit.id, other_user.id) is None
        assert visit_repository.get_details(visit.id, test_user.id).id == visit.id
        assert visit_repository.get_by_restaurant(test_restaurant.id, other_user.id) == []

    def test_get_by_restaurant_newest_first(self, visit_repository, test_user, test_restaurant):
        from datetime import datetime, timezone
        older = visit_repository.create(
            VisitCreate(restaurant_id=test_restaurant.id, date=datetime(2024, 1, 1, tzinfo=timezone.utc)),
            test_user.id
        )
        newer = visit_repository.create(
            VisitCreate(restaurant_id=test_restaurant.id, date=datetime(2024, 6, 1, tzinfo=timezone.utc)),
            test_user.id
        )

        visits = visit_repository.get_by_restaurant(test_restaurant.id, test_user.id)
        assert [v.id for v in visits] == [newer.id, older.id]

    def test_update_summary(self, visit_repository, test_user, other_user, test_restaurant):
        visit = visit_repository.create(VisitCreate(restaurant_id=test_restaurant.id), test_user.id)

        assert visit_repository.update_summary(visit.id, "Loved it", other_user.id) is None
        assert visit_repository.update_summary(visit.id, "Loved it", test_user.id).summary == "Loved it"
        assert visit_repository.update_summary(visit.id, "Meh", test_user.id).summary == "Meh"

    def test_create_note_and_details(self, visit_repository, test_user, other_user, test_restaurant):
        """测试详情中的笔记带作者信息"""
        visit = visit_repository.create(
            VisitCreate(restaurant_id=test_restaurant.id), test_user.id, [other_user.id]
        )
        visit_repository.create_note(NoteCreate(visit_id=visit.id, content="Spicy!"), other_user.id)
        visit_repository.create_photo(PhotoCreate(visit_id=visit.id, url="https://img/1.jpg"), test_user.id)

        details = visit_repository.get_details(visit.id, test_user.id)
        assert details.notes[0].content == "Spicy!"
        assert details.notes[0].user.name == "Bob Smith"
        assert details.photos[0].url == "https://img/1.jpg"
        assert {c.user_id for c in details.collaborators} == {test_user.id, other_user.id}

    def test_create_note_missing_visit(self, visit_repository, test_user):
        with pytest.raises(VisitNotFoundError, match="到访不存在"):
            visit_repository.create_note(NoteCreate(visit_id=9999, content="?"), test_user.id)

    def test_create_note_access_denied(self, visit_repository, test_user, other_user, test_restaurant):
        visit = visit_repository.create(VisitCreate(restaurant_id=test_restaurant.id), test_user.id)

        with pytest.raises(VisitAccessDeniedError):
            visit_repository.create_note(NoteCreate(visit_id=visit.id, content="hi"), other_user.id)

    def test_create_photo_errors(self, visit_repository, test_user, other_user, test_restaurant):
        visit = visit_repository.create(VisitCreate(restaurant_id=test_restaurant.id), test_user.id)

        with pytest.raises(VisitNotFoundError):
            visit_repository.create_photo(PhotoCreate(visit_id=9999, url="u"), test_user.id)
        with pytest.raises(VisitAccessDeniedError):
            visit_repository.create_photo(PhotoCreate(visit_id=visit.id, url="u"), other_user.id)


class TestActivityRepository:
    """测试 ActivityRepository"""

    def test_create_activity(self, activity_repository, test_user):
        activity = activity_repository.create(
            test_user.id, ActivityType.LIST_SHARED, ListSharedPayload(list_id=1, shared_with_id=2)
        )

        assert activity.type == ActivityType.LIST_SHARED
        assert activity.data == {"list_id": 1, "shared_with_id": 2}

    def test_create_activity_from_dict(self, activity_repository, test_user):
        activity = activity_repository.create(test_user.id, "ai_suggestion", {"based_on_restaurant_ids": [3]})

        assert activity.type == ActivityType.AI_SUGGESTION
        assert activity.data == {"based_on_restaurant_ids": [3]}

    def test_create_activity_unknown_type(self, activity_repository, test_user):
        with pytest.raises(ValueError):
            activity_repository.create(test_user.id, "photo_added", {})

    def test_create_activity_rejects_mismatched_payload(self, activity_repository, test_user):
        with pytest.raises(ValueError):
            activity_repository.create(
                test_user.id, ActivityType.AI_SUMMARY, ListSharedPayload(list_id=1, shared_with_id=2)
            )

        assert activity_repository.get_feed(test_user.id) == []

    def test_own_activities_always_visible(self, activity_repository, test_user):
        """测试本人的任意类型动态都出现在动态流中"""
        activity_repository.create(test_user.id, ActivityType.NOTE_ADDED, {"visit_id": 9999})
        activity_repository.create(test_user.id, ActivityType.FRIEND_REQUEST_SENT, {"friend_id": 5})

        feed = activity_repository.get_feed(test_user.id)
        assert [a.type for a in feed] == [ActivityType.FRIEND_REQUEST_SENT, ActivityType.NOTE_ADDED]
        assert feed[0].user.name == "Alice Wong"

    def test_feed_limit(self, activity_repository, test_user):
        for i in range(25):
            activity_repository.create(test_user.id, ActivityType.AI_SUGGESTION, {"based_on_restaurant_ids": [i]})

        feed = activity_repository.get_feed(test_user.id)
        assert len(feed) == 20
        assert feed[0].data == {"based_on_restaurant_ids": [24]}


class TestStatsRepository:
    """测试 StatsRepository"""

    def test_stats(self, stats_repository, list_repository, restaurant_repository, visit_repository,
                   test_user, other_user, test_restaurant):
        list_id = default_list_id(list_repository, test_user.id)
        restaurant_repository.add_to_list(list_id, test_restaurant.id, test_user.id)
        list_repository.share(list_id, other_user.id, False, test_user.id)
        visit_repository.create(VisitCreate(restaurant_id=test_restaurant.id), test_user.id)

        stats = stats_repository.get_user_stats(test_user.id)

        assert stats.total_lists == 1
        assert stats.total_restaurants == 1
        assert stats.total_visits == 1
        assert stats.total_collaborators == 1

    def test_stats_for_new_user(self, stats_repository, test_user):
        stats = stats_repository.get_user_stats(test_user.id)

        assert stats.total_lists == 1
        assert stats.total_restaurants == 0
        assert stats.total_visits == 0
        assert stats.total_collaborators == 0
