from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field
from sqlalchemy import CheckConstraint
from .base import Timestamped, utcnow


class Workflow(Timestamped, table=True):
    id: str = Field(primary_key=True, index=True)
    user_id: str = Field(index=True)
    name: str
    description: Optional[str] = None
    # bumped by every ordering change; conditional writes on it detect concurrent edits
    version: int = Field(default=1, nullable=False)


class WorkflowStep(SQLModel, table=True):
    __table_args__ = (
        CheckConstraint(
            "(prompt_id IS NULL) <> (custom_prompt IS NULL)",
            name="ck_step_single_payload",
        ),
        CheckConstraint("step_order >= 1", name="ck_step_order_positive"),
    )

    id: str = Field(primary_key=True, index=True)
    workflow_id: str = Field(foreign_key="workflow.id", index=True)
    step_order: int
    prompt_id: Optional[str] = Field(default=None, foreign_key="prompt.id", index=True)
    custom_prompt: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
