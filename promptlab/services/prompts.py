"""
Prompt Store
Owner-scoped prompt CRUD, tag associations and pins.
"""

import logging
from typing import List, Literal, Optional

from sqlalchemy import Engine, and_, func, or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..errors import ConflictError
from ..models import PinnedPrompt, Prompt, PromptTag, Workflow, WorkflowStep
from ..models.base import utcnow
from ..schemas import PromptCreateDTO, PromptUpdateDTO, PromptWithTags, TagResponse
from ..util.ids import new_id
from .lookups import get_owned_prompt, get_owned_tags, tags_by_prompt
from .sequencer import claim_version, renumber_workflow

logger = logging.getLogger(__name__)

DeletePolicy = Literal["block", "cascade"]


def escape_like(text: str) -> str:
    """Make LIKE wildcards in user input match literally (escape char is a backslash)."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PromptRepository:
    """Repository for prompts, their tags and pins"""

    def __init__(self, engine: Engine, delete_policy: DeletePolicy = "block"):
        self.engine = engine
        self.delete_policy = delete_policy

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def list(
        self,
        user_id: str,
        query: Optional[str] = None,
        tag_id: Optional[str] = None,
        pinned: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> List[PromptWithTags]:
        """
        The caller's prompts, newest first. ``query`` matches title or content
        case-insensitively; ``pinned`` lists pinned prompts, most recently
        pinned first.
        """
        with Session(self.engine) as session:
            stmt = select(Prompt).where(Prompt.user_id == user_id)
            if query:
                pattern = f"%{escape_like(query)}%"
                stmt = stmt.where(or_(
                    Prompt.title.ilike(pattern, escape="\\"),
                    Prompt.content.ilike(pattern, escape="\\"),
                ))
            if tag_id:
                stmt = stmt.join(PromptTag, PromptTag.prompt_id == Prompt.id).where(PromptTag.tag_id == tag_id)
            if pinned:
                stmt = stmt.join(
                    PinnedPrompt,
                    and_(PinnedPrompt.prompt_id == Prompt.id, PinnedPrompt.user_id == user_id),
                ).order_by(PinnedPrompt.pinned_at.desc(), Prompt.id.desc())
            else:
                stmt = stmt.order_by(Prompt.created_at.desc(), Prompt.id.desc())

            prompts = session.exec(stmt.offset(offset).limit(limit)).all()
            return self._with_tags(session, user_id, prompts)

    def get(self, user_id: str, prompt_id: str) -> PromptWithTags:
        with Session(self.engine) as session:
            prompt = get_owned_prompt(session, user_id, prompt_id)
            return self._with_tags(session, user_id, [prompt])[0]

    def count(self, user_id: str) -> int:
        with Session(self.engine) as session:
            return session.exec(
                select(func.count()).select_from(Prompt).where(Prompt.user_id == user_id)
            ).one()

    def pinned_count(self, user_id: str) -> int:
        with Session(self.engine) as session:
            return session.exec(
                select(func.count()).select_from(PinnedPrompt).where(PinnedPrompt.user_id == user_id)
            ).one()

    def tags_of(self, user_id: str, prompt_id: str) -> List[TagResponse]:
        with Session(self.engine) as session:
            prompt = get_owned_prompt(session, user_id, prompt_id)
            tags = tags_by_prompt(session, [prompt.id])[prompt.id]
            return [TagResponse.model_validate(t) for t in tags]

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------

    def create(self, user_id: str, data: PromptCreateDTO) -> PromptWithTags:
        with Session(self.engine) as session:
            tags = get_owned_tags(session, user_id, data.tag_ids)
            prompt = Prompt(
                id=new_id("prm_"),
                user_id=user_id,
                title=data.title,
                description=data.description,
                content=data.content,
            )
            session.add(prompt)
            session.flush()
            for tag in tags:
                session.add(PromptTag(prompt_id=prompt.id, tag_id=tag.id))
            session.commit()
            session.refresh(prompt)

            logger.info("Created prompt %s with %s tags", prompt.id, len(tags))
            return self._with_tags(session, user_id, [prompt])[0]

    def update(self, user_id: str, prompt_id: str, data: PromptUpdateDTO) -> PromptWithTags:
        with Session(self.engine) as session:
            prompt = get_owned_prompt(session, user_id, prompt_id)

            if data.title is not None:
                prompt.title = data.title
            if data.content is not None:
                prompt.content = data.content
            if "description" in data.model_fields_set:
                prompt.description = data.description
            prompt.updated_at = utcnow()

            session.add(prompt)
            session.commit()
            session.refresh(prompt)
            return self._with_tags(session, user_id, [prompt])[0]

    def delete(self, user_id: str, prompt_id: str) -> None:
        """
        Delete a prompt together with its pins and tag links. Workflow steps
        that reference it are handled by the delete policy: ``block`` refuses
        with ConflictError, ``cascade`` deletes those steps and renumbers
        every affected workflow. Everything commits together.
        """
        with Session(self.engine) as session:
            prompt = get_owned_prompt(session, user_id, prompt_id)

            steps = session.exec(select(WorkflowStep).where(WorkflowStep.prompt_id == prompt.id)).all()
            if steps and self.delete_policy == "block":
                workflow_ids = sorted({s.workflow_id for s in steps})
                raise ConflictError(
                    f"Prompt is used by {len(steps)} workflow step(s)",
                    [{"path": "workflow_id", "msg": wid} for wid in workflow_ids],
                )

            if steps:
                workflow_ids = sorted({s.workflow_id for s in steps})
                for wid in workflow_ids:
                    claim_version(session, session.get(Workflow, wid))
                for step in steps:
                    session.delete(step)
                session.flush()
                for wid in workflow_ids:
                    renumber_workflow(session, wid)
                logger.info("Deleted %s steps referencing prompt %s", len(steps), prompt.id)

            for link in session.exec(select(PromptTag).where(PromptTag.prompt_id == prompt.id)):
                session.delete(link)
            for pin in session.exec(select(PinnedPrompt).where(PinnedPrompt.prompt_id == prompt.id)):
                session.delete(pin)
            session.flush()

            session.delete(prompt)
            try:
                session.commit()
            except IntegrityError as exc:
                # a step referencing the prompt was written after the check above
                session.rollback()
                raise ConflictError("Prompt is used by workflow steps") from exc
            logger.info("Deleted prompt %s", prompt_id)

    def add_tags(self, user_id: str, prompt_id: str, tag_ids: List[str]) -> List[TagResponse]:
        """Link tags to a prompt. Pairs that already exist are left alone."""
        with Session(self.engine) as session:
            prompt = get_owned_prompt(session, user_id, prompt_id)
            tags = get_owned_tags(session, user_id, tag_ids)

            existing = set(session.exec(select(PromptTag.tag_id).where(PromptTag.prompt_id == prompt.id)).all())
            for tag in tags:
                if tag.id not in existing:
                    session.add(PromptTag(prompt_id=prompt.id, tag_id=tag.id))
            session.commit()

            return [TagResponse.model_validate(t) for t in tags_by_prompt(session, [prompt.id])[prompt.id]]

    def remove_tag(self, user_id: str, prompt_id: str, tag_id: str) -> None:
        """Unlink a tag. Removing a pair that does not exist is a no-op."""
        with Session(self.engine) as session:
            prompt = get_owned_prompt(session, user_id, prompt_id)
            link = session.get(PromptTag, (prompt.id, tag_id))
            if link is not None:
                session.delete(link)
                session.commit()

    def pin(self, user_id: str, prompt_id: str) -> PromptWithTags:
        """Pin a prompt for its owner. Pinning twice keeps a single record."""
        with Session(self.engine) as session:
            prompt = get_owned_prompt(session, user_id, prompt_id)
            if self._pin_of(session, user_id, prompt.id) is None:
                session.add(PinnedPrompt(id=new_id("pin_"), user_id=user_id, prompt_id=prompt.id, pinned_at=utcnow()))
                try:
                    session.commit()
                except IntegrityError:
                    # another request pinned it first; the unique constraint kept one record
                    session.rollback()
            return self._with_tags(session, user_id, [prompt])[0]

    def unpin(self, user_id: str, prompt_id: str) -> PromptWithTags:
        """Unpin a prompt. Unpinning a prompt that is not pinned is a no-op."""
        with Session(self.engine) as session:
            prompt = get_owned_prompt(session, user_id, prompt_id)
            pin = self._pin_of(session, user_id, prompt.id)
            if pin is not None:
                session.delete(pin)
                session.commit()
            return self._with_tags(session, user_id, [prompt])[0]

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _pin_of(self, session: Session, user_id: str, prompt_id: str) -> Optional[PinnedPrompt]:
        return session.exec(
            select(PinnedPrompt).where(PinnedPrompt.user_id == user_id, PinnedPrompt.prompt_id == prompt_id)
        ).first()

    def _with_tags(self, session: Session, user_id: str, prompts) -> List[PromptWithTags]:
        ids = [p.id for p in prompts]
        tags = tags_by_prompt(session, ids)
        pinned = set()
        if ids:
            pinned = set(session.exec(
                select(PinnedPrompt.prompt_id).where(PinnedPrompt.user_id == user_id, PinnedPrompt.prompt_id.in_(ids))
            ).all())

        result = []
        for prompt in prompts:
            item = PromptWithTags.model_validate(prompt)
            item.tags = [TagResponse.model_validate(t) for t in tags[prompt.id]]
            item.is_pinned = prompt.id in pinned
            result.append(item)
        return result
