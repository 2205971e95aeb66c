"""
Owner-scoped row lookups shared by the services.

A row owned by another user is reported exactly like a missing one.
"""
from typing import Dict, Iterable, List, Type, TypeVar

from sqlmodel import Session, SQLModel, select

from ..errors import NotFoundError
from ..models import Prompt, PromptTag, Tag, Workflow, WorkflowStep

T = TypeVar("T", bound=SQLModel)


def get_owned(session: Session, model: Type[T], entity: str, user_id: str, entity_id: str) -> T:
    row = session.get(model, entity_id)
    if row is None or row.user_id != user_id:
        raise NotFoundError(entity, entity_id)
    return row


def get_owned_prompt(session: Session, user_id: str, prompt_id: str) -> Prompt:
    return get_owned(session, Prompt, "Prompt", user_id, prompt_id)


def get_owned_tag(session: Session, user_id: str, tag_id: str) -> Tag:
    return get_owned(session, Tag, "Tag", user_id, tag_id)


def get_owned_workflow(session: Session, user_id: str, workflow_id: str) -> Workflow:
    return get_owned(session, Workflow, "Workflow", user_id, workflow_id)


def get_workflow_step(session: Session, workflow: Workflow, step_id: str) -> WorkflowStep:
    step = session.get(WorkflowStep, step_id)
    if step is None or step.workflow_id != workflow.id:
        raise NotFoundError("Step", step_id)
    return step


def get_owned_tags(session: Session, user_id: str, tag_ids: Iterable[str]) -> List[Tag]:
    """Resolve tag ids in the given order, dropping repeats."""
    wanted = list(dict.fromkeys(tag_ids))
    if not wanted:
        return []
    rows = session.exec(select(Tag).where(Tag.id.in_(wanted), Tag.user_id == user_id)).all()
    found = {t.id: t for t in rows}
    for tag_id in wanted:
        if tag_id not in found:
            raise NotFoundError("Tag", tag_id)
    return [found[t] for t in wanted]


def tags_by_prompt(session: Session, prompt_ids: Iterable[str]) -> Dict[str, List[Tag]]:
    ids = list(prompt_ids)
    result: Dict[str, List[Tag]] = {pid: [] for pid in ids}
    if not ids:
        return result
    rows = session.exec(
        select(PromptTag.prompt_id, Tag)
        .join(Tag, Tag.id == PromptTag.tag_id)
        .where(PromptTag.prompt_id.in_(ids))
        .order_by(Tag.name)
    ).all()
    for prompt_id, tag in rows:
        result[prompt_id].append(tag)
    return result
