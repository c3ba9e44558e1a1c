"""
动态载荷模型 - 按动态类型区分的 tagged union

Activity.data 在库里是一段 JSON；读写时通过这里的模型解析，
动态流的相关性判断基于解析后的具体载荷类型。
校验是宽松的：所有 id 字段可选，未知键原样保留。
"""

from typing import Optional, List, Union, Literal, Dict, Any, Annotated

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from app.models.activity import ActivityType


class ActivityPayload(BaseModel):
    """所有载荷的基类"""
    model_config = ConfigDict(extra="allow")


class RestaurantAddedPayload(ActivityPayload):
    type: Literal["restaurant_added"] = "restaurant_added"
    restaurant_id: Optional[int] = None
    list_id: Optional[int] = None


class VisitAddedPayload(ActivityPayload):
    type: Literal["visit_added"] = "visit_added"
    visit_id: Optional[int] = None
    restaurant_id: Optional[int] = None


class NoteAddedPayload(ActivityPayload):
    type: Literal["note_added"] = "note_added"
    note_id: Optional[int] = None
    visit_id: Optional[int] = None


class ListSharedPayload(ActivityPayload):
    type: Literal["list_shared"] = "list_shared"
    list_id: Optional[int] = None
    shared_with_id: Optional[int] = None


class AiSummaryPayload(ActivityPayload):
    type: Literal["ai_summary"] = "ai_summary"
    visit_id: Optional[int] = None


class AiSuggestionPayload(ActivityPayload):
    type: Literal["ai_suggestion"] = "ai_suggestion"
    based_on_restaurant_ids: List[int] = Field(default_factory=list)


class FriendRequestSentPayload(ActivityPayload):
    type: Literal["friend_request_sent"] = "friend_request_sent"
    friend_id: Optional[int] = None


class FriendRequestAcceptedPayload(ActivityPayload):
    type: Literal["friend_request_accepted"] = "friend_request_accepted"
    friend_id: Optional[int] = None


AnyActivityPayload = Annotated[
    Union[
        RestaurantAddedPayload,
        VisitAddedPayload,
        NoteAddedPayload,
        ListSharedPayload,
        AiSummaryPayload,
        AiSuggestionPayload,
        FriendRequestSentPayload,
        FriendRequestAcceptedPayload,
    ],
    Field(discriminator="type"),
]

_payload_adapter = TypeAdapter(AnyActivityPayload)


def parse_payload(activity_type: ActivityType, data: Optional[Dict[str, Any]]) -> ActivityPayload:
    """
    把 JSON 载荷解析为对应动态类型的载荷模型

    Args:
        activity_type: 动态类型
        data: 库中存储的载荷字典

    Returns:
        具体的载荷模型实例
    """
    raw = dict(data or {})
    raw["type"] = ActivityType(activity_type).value
    return _payload_adapter.validate_python(raw)


def dump_payload(payload: ActivityPayload) -> Dict[str, Any]:
    """把载荷模型转为入库的 JSON 字典（去掉 type 标签和空值）"""
    return payload.model_dump(mode="json", exclude={"type"}, exclude_none=True)
