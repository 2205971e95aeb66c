from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint
from .base import Timestamped, utcnow

DEFAULT_TAG_COLOR = "#3B82F6"


class Prompt(Timestamped, table=True):
    id: str = Field(primary_key=True, index=True)
    user_id: str = Field(index=True)
    title: str
    description: Optional[str] = None
    content: str


class Tag(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_tag_user_name"),)

    id: str = Field(primary_key=True, index=True)
    user_id: str = Field(index=True)
    name: str
    color: str = DEFAULT_TAG_COLOR
    created_at: datetime = Field(default_factory=utcnow, nullable=False)


class PromptTag(SQLModel, table=True):
    # la pareja (prompt, tag) es la clave: no puede repetirse
    prompt_id: str = Field(foreign_key="prompt.id", primary_key=True)
    tag_id: str = Field(foreign_key="tag.id", primary_key=True, index=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)


class PinnedPrompt(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("user_id", "prompt_id", name="uq_pin_user_prompt"),)

    id: str = Field(primary_key=True, index=True)
    user_id: str = Field(index=True)
    prompt_id: str = Field(foreign_key="prompt.id", index=True)
    pinned_at: datetime = Field(default_factory=utcnow, nullable=False)
