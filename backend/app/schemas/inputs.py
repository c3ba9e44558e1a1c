"""
写入字段模型

调用方（路由层）完成请求校验后，以这些模型把字段传给 MemStorage。
id 和时间戳由存储层生成，不在这里出现。
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class UserCreate(BaseModel):
    """注册或首次第三方登录时的用户字段"""
    username: str = Field(min_length=1, description="唯一用户名")
    name: str = Field(description="展示名称")
    email: str
    password: Optional[str] = Field(default=None, description="第三方登录用户为空")
    avatar: Optional[str] = None
    external_auth_id: Optional[str] = Field(default=None, min_length=1, description="第三方认证 ID（唯一）")


class ListCreate(BaseModel):
    """创建清单的字段"""
    title: str = Field(min_length=1)
    description: Optional[str] = None
    cover_image: Optional[str] = None


class ListUpdate(BaseModel):
    """
    更新清单的字段

    部分更新：只有显式传入的字段会被写入（model_dump(exclude_unset=True)）。
    title 可以不传，但不能显式置空
    """
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    cover_image: Optional[str] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, title: Optional[str]) -> str:
        if title is None:
            raise ValueError("清单标题不能为空")
        return title


class RestaurantCreate(BaseModel):
    """创建餐厅的字段，place_id 是去重依据"""
    name: str
    place_id: str = Field(min_length=1, description="外部地点 ID")
    address: Optional[str] = None
    cuisine: Optional[str] = None
    price_level: Optional[str] = None
    rating: Optional[str] = None
    photo_url: Optional[str] = None


class VisitCreate(BaseModel):
    """创建到访的字段，date 缺省为当前时间"""
    restaurant_id: int
    date: Optional[datetime] = None
    summary: Optional[str] = None
    occasion: Optional[str] = None


class NoteCreate(BaseModel):
    visit_id: int
    content: str = Field(min_length=1)


class PhotoCreate(BaseModel):
    visit_id: int
    url: str = Field(min_length=1)
