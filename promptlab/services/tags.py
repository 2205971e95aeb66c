"""
Tag Store
Owner-scoped tag CRUD. Names are unique per owner.
"""

import logging
from typing import List

from sqlalchemy import Engine, func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..errors import ConflictError
from ..models import DEFAULT_TAG_COLOR, PromptTag, Tag
from ..schemas import TagCreateDTO, TagResponse, TagUpdateDTO
from ..util.ids import new_id
from .lookups import get_owned_tag

logger = logging.getLogger(__name__)


class TagRepository:
    """Repository for tag CRUD operations"""

    def __init__(self, engine: Engine):
        self.engine = engine

    def list(self, user_id: str) -> List[TagResponse]:
        with Session(self.engine) as session:
            tags = session.exec(select(Tag).where(Tag.user_id == user_id).order_by(Tag.name)).all()
            return [TagResponse.model_validate(t) for t in tags]

    def get(self, user_id: str, tag_id: str) -> TagResponse:
        with Session(self.engine) as session:
            return TagResponse.model_validate(get_owned_tag(session, user_id, tag_id))

    def count(self, user_id: str) -> int:
        with Session(self.engine) as session:
            return session.exec(select(func.count()).select_from(Tag).where(Tag.user_id == user_id)).one()

    def create(self, user_id: str, data: TagCreateDTO) -> TagResponse:
        with Session(self.engine) as session:
            self._ensure_name_free(session, user_id, data.name)
            tag = Tag(id=new_id("tag_"), user_id=user_id, name=data.name, color=data.color or DEFAULT_TAG_COLOR)
            session.add(tag)
            self._commit(session, data.name)
            session.refresh(tag)
            return TagResponse.model_validate(tag)

    def update(self, user_id: str, tag_id: str, data: TagUpdateDTO) -> TagResponse:
        with Session(self.engine) as session:
            tag = get_owned_tag(session, user_id, tag_id)
            if data.name is not None and data.name != tag.name:
                self._ensure_name_free(session, user_id, data.name)
                tag.name = data.name
            if data.color is not None:
                tag.color = data.color
            session.add(tag)
            self._commit(session, tag.name)
            session.refresh(tag)
            return TagResponse.model_validate(tag)

    def delete(self, user_id: str, tag_id: str) -> None:
        """Delete a tag and unlink it from every prompt"""
        with Session(self.engine) as session:
            tag = get_owned_tag(session, user_id, tag_id)
            links = session.exec(select(PromptTag).where(PromptTag.tag_id == tag.id)).all()
            for link in links:
                session.delete(link)
            session.flush()
            session.delete(tag)
            session.commit()
            logger.info("Deleted tag %s and %s prompt links", tag_id, len(links))

    def _ensure_name_free(self, session: Session, user_id: str, name: str) -> None:
        taken = session.exec(select(Tag.id).where(Tag.user_id == user_id, Tag.name == name)).first()
        if taken is not None:
            raise ConflictError(f"Tag '{name}' already exists", [{"path": "name", "msg": name}])

    def _commit(self, session: Session, name: str) -> None:
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise ConflictError(f"Tag '{name}' already exists", [{"path": "name", "msg": name}]) from exc
