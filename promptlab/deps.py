from fastapi import Depends, Header, HTTPException
from sqlalchemy import Engine

from .config import settings
from .db import get_engine
from .services.prompts import PromptRepository
from .services.sequencer import StepSequencer
from .services.tags import TagRepository
from .services.workflows import WorkflowRepository


async def current_user(authorization: str | None = Header(default=None)) -> str:
    """
    Resolve the caller's user id from ``Authorization: Bearer <prefix><user_id>``.
    The id is opaque; it is handed to every service call instead of living in
    a global.
    """
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid token", headers={"WWW-Authenticate": "Bearer"})
    token = authorization[len("bearer "):].strip()
    prefix = settings.auth_token_prefix
    if not token.startswith(prefix) or len(token) == len(prefix):
        raise HTTPException(status_code=401, detail="Unauthorized", headers={"WWW-Authenticate": "Bearer"})
    return token[len(prefix):]


def engine_dep() -> Engine:
    return get_engine()


def prompt_repo(engine: Engine = Depends(engine_dep)) -> PromptRepository:
    return PromptRepository(engine, delete_policy=settings.prompt_delete_policy)


def tag_repo(engine: Engine = Depends(engine_dep)) -> TagRepository:
    return TagRepository(engine)


def workflow_repo(engine: Engine = Depends(engine_dep)) -> WorkflowRepository:
    return WorkflowRepository(engine)


def step_sequencer(engine: Engine = Depends(engine_dep)) -> StepSequencer:
    return StepSequencer(engine)
