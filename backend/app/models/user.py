"""
用户域模型 - 用户表
"""

from typing import Optional
from sqlmodel import Field

from .base import CreatedAtModel


class User(CreatedAtModel, table=True):
    """
    用户表
    注册或首次第三方登录时创建，创建后除头像外身份字段不可变
    """
    __tablename__ = "users"

    # 主键
    id: Optional[int] = Field(default=None, primary_key=True)

    # 唯一用户名
    username: str = Field(unique=True, index=True, nullable=False)

    # 展示名称
    name: str = Field(nullable=False)

    email: str = Field(nullable=False)

    # 第三方登录用户没有密码
    password: Optional[str] = Field(default=None)

    # 头像 URL，唯一允许修改的身份字段
    avatar: Optional[str] = Field(default=None)

    # 第三方认证 ID（唯一）
    external_auth_id: Optional[str] = Field(default=None, unique=True, index=True)
