"""
存储层异常

大部分操作用 None / False / 空列表表示"不存在或无权限"；
只有下面这些情况抛出异常，调用方据此区分"没有可展示的内容"和"非法写入"。
"""


class StorageError(Exception):
    """存储层异常基类"""


class VisitNotFoundError(StorageError):
    """写入笔记或照片时目标到访不存在"""

    def __init__(self, visit_id: int):
        self.visit_id = visit_id
        super().__init__(f"到访不存在 (Visit ID: {visit_id})")


class VisitAccessDeniedError(StorageError):
    """写入笔记或照片时用户不是该到访的协作者"""

    def __init__(self, visit_id: int, user_id: int):
        self.visit_id = visit_id
        self.user_id = user_id
        super().__init__(f"用户无权访问该到访 (Visit ID: {visit_id}, User ID: {user_id})")


class UserConflictError(StorageError):
    """用户名或第三方认证 ID 已被占用"""

    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"用户 {field} '{value}' 已存在")
