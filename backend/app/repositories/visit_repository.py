"""
到访 Repository
提供 visits、visit_collaborators、notes、photos 的增删改查操作
"""

from typing import Iterable, List, Optional

from sqlmodel import Session, select, col

from app.models.restaurant import Restaurant
from app.models.user import User
from app.models.visit import Visit, VisitCollaborator, Note, Photo
from app.repositories.access import AccessPolicy
from app.repositories.exceptions import VisitNotFoundError, VisitAccessDeniedError
from app.repositories.user_repository import UserRepository
from app.schemas.inputs import VisitCreate, NoteCreate, PhotoCreate
from app.schemas.views import (
    VisitWithDetails, NoteWithAuthor, PhotoRead, CollaboratorSummary
)


class VisitRepository:
    """
    到访数据访问对象

    读操作对不存在或无权限的到访返回 None / 空列表；
    写笔记和照片时则抛出 VisitNotFoundError / VisitAccessDeniedError
    """

    def __init__(self, session: Session):
        """
        初始化 Repository

        Args:
            session: SQLModel 数据库会话
        """
        self.session = session
        self.access = AccessPolicy(session)

    # ==================== Visit 操作 ====================

    def create(
        self,
        fields: VisitCreate,
        creator_id: int,
        collaborator_ids: Iterable[int] = ()
    ) -> Optional[Visit]:
        """
        创建到访

        创建者写入 is_owner=True 的协作者行；collaborator_ids 中存在的用户
        各写入一行 is_owner=False，不存在的 ID、重复 ID 和创建者本人被跳过

        Args:
            fields: 到访字段
            creator_id: 创建者用户 ID
            collaborator_ids: 同行用户 ID

        Returns:
            创建的 Visit 对象，餐厅或创建者不存在时返回 None
        """
        if self.session.get(Restaurant, fields.restaurant_id) is None:
            return None
        if self.session.get(User, creator_id) is None:
            return None

        data = fields.model_dump(exclude_none=True)
        visit = Visit(**data)
        self.session.add(visit)
        self.session.flush()

        self.session.add(VisitCollaborator(visit_id=visit.id, user_id=creator_id, is_owner=True))
        seen = {creator_id}
        for user_id in collaborator_ids:
            if user_id in seen or self.session.get(User, user_id) is None:
                continue
            seen.add(user_id)
            self.session.add(VisitCollaborator(visit_id=visit.id, user_id=user_id, is_owner=False))

        self.session.commit()
        self.session.refresh(visit)
        return visit

    def get_by_id(self, visit_id: int) -> Optional[Visit]:
        return self.session.get(Visit, visit_id)

    def get_by_restaurant(self, restaurant_id: int, user_id: int) -> List[VisitWithDetails]:
        """
        获取餐厅下用户参与的到访，按到访日期倒序

        Args:
            restaurant_id: 餐厅 ID
            user_id: 用户 ID

        Returns:
            VisitWithDetails 列表
        """
        visit_ids = self.access.visit_ids_for_user(user_id)
        if not visit_ids:
            return []

        statement = select(Visit).where(
            Visit.restaurant_id == restaurant_id,
            col(Visit.id).in_(list(visit_ids))
        ).order_by(col(Visit.date).desc(), col(Visit.id).desc())
        return [self._to_details(visit) for visit in self.session.exec(statement).all()]

    def get_details(self, visit_id: int, user_id: int) -> Optional[VisitWithDetails]:
        """
        获取到访详情（笔记、照片、协作者）

        Returns:
            VisitWithDetails，不存在或无权限返回 None
        """
        if not self.access.can_access_visit(visit_id, user_id):
            return None
        return self._to_details(self.get_by_id(visit_id))

    def update_summary(self, visit_id: int, summary: str, user_id: int) -> Optional[Visit]:
        """
        覆盖写入到访总结

        Returns:
            更新后的 Visit，不存在或无权限返回 None
        """
        if not self.access.can_access_visit(visit_id, user_id):
            return None

        visit = self.get_by_id(visit_id)
        visit.summary = summary
        self.session.add(visit)
        self.session.commit()
        self.session.refresh(visit)
        return visit

    # ==================== Note / Photo 操作 ====================

    def create_note(self, fields: NoteCreate, author_id: int) -> Note:
        """
        创建笔记

        Raises:
            VisitNotFoundError: 到访不存在
            VisitAccessDeniedError: 作者不是该到访的协作者
        """
        self._require_visit_access(fields.visit_id, author_id)

        note = Note(visit_id=fields.visit_id, user_id=author_id, content=fields.content)
        self.session.add(note)
        self.session.commit()
        self.session.refresh(note)
        return note

    def create_photo(self, fields: PhotoCreate, uploader_id: int) -> Photo:
        """
        创建照片

        Raises:
            VisitNotFoundError: 到访不存在
            VisitAccessDeniedError: 上传者不是该到访的协作者
        """
        self._require_visit_access(fields.visit_id, uploader_id)

        photo = Photo(visit_id=fields.visit_id, user_id=uploader_id, url=fields.url)
        self.session.add(photo)
        self.session.commit()
        self.session.refresh(photo)
        return photo

    def _require_visit_access(self, visit_id: int, user_id: int) -> None:
        if self.get_by_id(visit_id) is None:
            raise VisitNotFoundError(visit_id)
        if not self.access.can_access_visit(visit_id, user_id):
            raise VisitAccessDeniedError(visit_id, user_id)

    def _to_details(self, visit: Visit) -> VisitWithDetails:
        users = UserRepository(self.session)

        notes_statement = select(Note).where(
            Note.visit_id == visit.id
        ).order_by(col(Note.created_at).asc(), col(Note.id).asc())
        notes = self.session.exec(notes_statement).all()

        photos_statement = select(Photo).where(
            Photo.visit_id == visit.id
        ).order_by(col(Photo.id).asc())
        photos = self.session.exec(photos_statement).all()

        collaborators_statement = select(VisitCollaborator).where(
            VisitCollaborator.visit_id == visit.id
        ).order_by(col(VisitCollaborator.id).asc())
        collaborators = self.session.exec(collaborators_statement).all()

        summaries = users.get_summaries(
            [note.user_id for note in notes] + [row.user_id for row in collaborators]
        )

        return VisitWithDetails(
            **visit.model_dump(),
            notes=[
                NoteWithAuthor(**note.model_dump(), user=summaries[note.user_id])
                for note in notes
            ],
            photos=[PhotoRead(**photo.model_dump()) for photo in photos],
            collaborators=[
                CollaboratorSummary(
                    user_id=row.user_id,
                    name=summaries[row.user_id].name,
                    avatar=summaries[row.user_id].avatar,
                    is_owner=row.is_owner
                )
                for row in collaborators
            ]
        )
