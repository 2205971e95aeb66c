"""
Workflow Store
Owner-scoped CRUD for workflows. Step ordering lives in the sequencer.
"""

import logging
from typing import List

from sqlalchemy import Engine, func
from sqlmodel import Session, select

from ..models import Prompt, Workflow, WorkflowStep
from ..models.base import utcnow
from ..schemas import (
    PromptResponse,
    StepWithPrompt,
    WorkflowCreateDTO,
    WorkflowResponse,
    WorkflowUpdateDTO,
    WorkflowWithSteps,
)
from ..util.ids import new_id
from .lookups import get_owned_workflow

logger = logging.getLogger(__name__)


class WorkflowRepository:
    """Repository for workflow CRUD operations"""

    def __init__(self, engine: Engine):
        self.engine = engine

    def create(self, user_id: str, data: WorkflowCreateDTO) -> WorkflowResponse:
        with Session(self.engine) as session:
            workflow = Workflow(
                id=new_id("wf_"),
                user_id=user_id,
                name=data.name,
                description=data.description,
            )
            session.add(workflow)
            session.commit()
            session.refresh(workflow)
            logger.info("Created workflow %s", workflow.id)
            return WorkflowResponse.model_validate(workflow)

    def get(self, user_id: str, workflow_id: str) -> WorkflowWithSteps:
        """Workflow with its steps in order, each joined with its prompt"""
        with Session(self.engine) as session:
            workflow = get_owned_workflow(session, user_id, workflow_id)
            rows = session.exec(
                select(WorkflowStep, Prompt)
                .join(Prompt, Prompt.id == WorkflowStep.prompt_id, isouter=True)
                .where(WorkflowStep.workflow_id == workflow.id)
                .order_by(WorkflowStep.step_order, WorkflowStep.created_at, WorkflowStep.id)
            ).all()

            steps = []
            for step, prompt in rows:
                item = StepWithPrompt.model_validate(step)
                if prompt is not None:
                    item.prompt = PromptResponse.model_validate(prompt)
                steps.append(item)

            detail = WorkflowWithSteps.model_validate(workflow)
            detail.steps = steps
            return detail

    def list(self, user_id: str, limit: int | None = None) -> List[WorkflowResponse]:
        """The caller's workflows, newest first"""
        with Session(self.engine) as session:
            stmt = (
                select(Workflow)
                .where(Workflow.user_id == user_id)
                .order_by(Workflow.created_at.desc(), Workflow.id.desc())
            )
            if limit is not None:
                stmt = stmt.limit(limit)
            return [WorkflowResponse.model_validate(w) for w in session.exec(stmt).all()]

    def count(self, user_id: str) -> int:
        with Session(self.engine) as session:
            return session.exec(
                select(func.count()).select_from(Workflow).where(Workflow.user_id == user_id)
            ).one()

    def update(self, user_id: str, workflow_id: str, data: WorkflowUpdateDTO) -> WorkflowResponse:
        with Session(self.engine) as session:
            workflow = get_owned_workflow(session, user_id, workflow_id)

            if data.name is not None:
                workflow.name = data.name
            if "description" in data.model_fields_set:
                workflow.description = data.description
            workflow.updated_at = utcnow()

            session.add(workflow)
            session.commit()
            session.refresh(workflow)
            return WorkflowResponse.model_validate(workflow)

    def delete(self, user_id: str, workflow_id: str) -> None:
        """Delete the workflow and all of its steps in one transaction"""
        with Session(self.engine) as session:
            workflow = get_owned_workflow(session, user_id, workflow_id)

            steps = session.exec(select(WorkflowStep).where(WorkflowStep.workflow_id == workflow.id)).all()
            for step in steps:
                session.delete(step)
            session.flush()

            session.delete(workflow)
            session.commit()
            logger.info("Deleted workflow %s with %s steps", workflow_id, len(steps))
