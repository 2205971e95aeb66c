"""
Step Sequencer
Keeps every workflow's step_order values at exactly 1..n.

Every ordering operation runs in a single transaction that starts by claiming
the workflow's version with a conditional UPDATE. A concurrent session that
read the same version gets zero affected rows and a ConflictError, so two
writers can never interleave their renumbering.
"""

import logging
from collections import Counter
from typing import List, Literal, Optional, Sequence

from sqlalchemy import Engine, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from sqlmodel import Session, select

from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import Prompt, Workflow, WorkflowStep
from ..models.base import utcnow
from ..schemas import CustomPayload, ReferencedPayload, StepPayload, StepResponse, StepUpdateDTO
from ..util.ids import new_id
from .lookups import get_owned_workflow, get_workflow_step

logger = logging.getLogger(__name__)

Direction = Literal["up", "down"]


# ============================================================================
# Pure sequencing helpers
# ============================================================================

def is_contiguous(orders: Sequence[int]) -> bool:
    return sorted(orders) == list(range(1, len(orders) + 1))


def apply_sequence(steps: Sequence[WorkflowStep]) -> int:
    """
    Overwrite step_order with index + 1 for the given sequence.
    Returns how many steps actually changed.
    """
    changed = 0
    for index, step in enumerate(steps):
        if step.step_order != index + 1:
            step.step_order = index + 1
            changed += 1
    return changed


def renumber(steps: Sequence[WorkflowStep]) -> List[WorkflowStep]:
    """
    Corrective pass: keep the steps' relative positions and close any gaps
    or duplicates. The sort is stable, so steps sharing an order value keep
    the order they were given in.
    """
    sequence = sorted(steps, key=lambda s: s.step_order)
    apply_sequence(sequence)
    return sequence


def check_reorder(current_ids: Sequence[str], new_ids: Sequence[str]) -> None:
    """The requested sequence must list every current step exactly once."""
    details = []
    duplicates = sorted(i for i, n in Counter(new_ids).items() if n > 1)
    missing = sorted(set(current_ids) - set(new_ids))
    unknown = sorted(set(new_ids) - set(current_ids))
    for step_id in duplicates:
        details.append({"path": "step_ids", "msg": f"duplicate step id {step_id}"})
    for step_id in missing:
        details.append({"path": "step_ids", "msg": f"missing step id {step_id}"})
    for step_id in unknown:
        details.append({"path": "step_ids", "msg": f"unknown step id {step_id}"})
    if details:
        raise ValidationError("step_ids must list every step of the workflow exactly once", details)


def moved(step_ids: Sequence[str], step_id: str, direction: Direction) -> List[str]:
    """
    Sequence with step_id shifted one position. Moving past either end
    returns the sequence unchanged.
    """
    ids = list(step_ids)
    index = ids.index(step_id)
    target = index - 1 if direction == "up" else index + 1
    if target < 0 or target >= len(ids):
        return ids
    ids.insert(target, ids.pop(index))
    return ids


def payload_columns(payload: StepPayload) -> dict:
    if isinstance(payload, ReferencedPayload):
        return {"prompt_id": payload.prompt_id, "custom_prompt": None}
    return {"prompt_id": None, "custom_prompt": payload.text}


# ============================================================================
# Session-level helpers (also used by the prompt store)
# ============================================================================

def load_steps(session: Session, workflow_id: str) -> List[WorkflowStep]:
    return list(session.exec(
        select(WorkflowStep)
        .where(WorkflowStep.workflow_id == workflow_id)
        .order_by(WorkflowStep.step_order, WorkflowStep.created_at, WorkflowStep.id)
    ).all())


def check_expected_version(workflow: Workflow, expected_version: Optional[int]) -> None:
    if expected_version is not None and expected_version != workflow.version:
        logger.warning(
            "Stale version for workflow %s: expected %s, current %s",
            workflow.id, expected_version, workflow.version,
        )
        raise ConflictError(
            "Workflow was modified by another session; reload and retry",
            [{"path": "expected_version", "msg": f"current version is {workflow.version}"}],
        )


def claim_version(session: Session, workflow: Workflow, expected_version: Optional[int] = None) -> None:
    """
    Conditionally bump the workflow version inside the current transaction.
    Raises ConflictError if the caller's expected version is stale or if
    another session bumped it since this one read the row.
    """
    check_expected_version(workflow, expected_version)
    read_version = workflow.version
    result = session.execute(
        update(Workflow)
        .where(Workflow.id == workflow.id, Workflow.version == read_version)
        .values(version=Workflow.version + 1, updated_at=utcnow())
        .execution_options(synchronize_session="evaluate")
    )
    if result.rowcount != 1:
        logger.warning("Concurrent ordering change on workflow %s", workflow.id)
        raise ConflictError("Workflow was modified by another session; reload and retry")


def renumber_workflow(session: Session, workflow_id: str) -> List[WorkflowStep]:
    return renumber(load_steps(session, workflow_id))


class StepSequencer:
    """Append / Remove / Reorder / Move over one workflow's steps"""

    def __init__(self, engine: Engine):
        self.engine = engine

    def append(
        self,
        user_id: str,
        workflow_id: str,
        payload: StepPayload,
        notes: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> StepResponse:
        """Add a step at the end: step_order = current step count + 1."""
        with Session(self.engine) as session:
            workflow = get_owned_workflow(session, user_id, workflow_id)
            self._check_payload(session, user_id, payload)
            claim_version(session, workflow, expected_version)

            count = session.exec(
                select(func.count()).select_from(WorkflowStep).where(WorkflowStep.workflow_id == workflow.id)
            ).one()
            step = WorkflowStep(
                id=new_id("step_"),
                workflow_id=workflow.id,
                step_order=count + 1,
                notes=notes,
                **payload_columns(payload),
            )
            session.add(step)
            self._commit_step(session, step_id=step.id, payload=payload)
            session.refresh(step)

            logger.info("Appended step %s to workflow %s at position %s", step.id, workflow.id, step.step_order)
            return StepResponse.model_validate(step)

    def update(self, user_id: str, workflow_id: str, step_id: str, data: StepUpdateDTO) -> StepResponse:
        """Change a step's payload and/or notes. Never touches its order."""
        with Session(self.engine) as session:
            workflow = get_owned_workflow(session, user_id, workflow_id)
            step = get_workflow_step(session, workflow, step_id)

            payload = data.payload()
            if payload is not None:
                self._check_payload(session, user_id, payload)
                for column, value in payload_columns(payload).items():
                    setattr(step, column, value)
            if "notes" in data.model_fields_set:
                step.notes = data.notes

            workflow.updated_at = utcnow()
            session.add(step)
            session.add(workflow)
            self._commit_step(session, step_id=step.id, payload=payload)
            session.refresh(step)
            return StepResponse.model_validate(step)

    def remove(
        self,
        user_id: str,
        workflow_id: str,
        step_id: str,
        expected_version: Optional[int] = None,
    ) -> List[StepResponse]:
        """
        Delete a step and renumber the survivors from the full surviving list.
        Delete and renumber commit together.
        """
        with Session(self.engine) as session:
            workflow = get_owned_workflow(session, user_id, workflow_id)
            step = get_workflow_step(session, workflow, step_id)
            claim_version(session, workflow, expected_version)

            session.delete(step)
            session.flush()
            survivors = renumber_workflow(session, workflow.id)
            session.commit()

            logger.info("Removed step %s from workflow %s, %s steps left", step_id, workflow.id, len(survivors))
            return [StepResponse.model_validate(s) for s in survivors]

    def reorder(
        self,
        user_id: str,
        workflow_id: str,
        step_ids: Sequence[str],
        expected_version: Optional[int] = None,
    ) -> List[StepResponse]:
        """Assign step_order = index + 1 following step_ids, as one write."""
        with Session(self.engine) as session:
            workflow = get_owned_workflow(session, user_id, workflow_id)
            claim_version(session, workflow, expected_version)
            steps = self._reorder(session, workflow, step_ids)
            session.commit()

            logger.info("Reordered %s steps of workflow %s", len(steps), workflow.id)
            return [StepResponse.model_validate(s) for s in steps]

    def move(
        self,
        user_id: str,
        workflow_id: str,
        step_id: str,
        direction: Direction,
        expected_version: Optional[int] = None,
    ) -> List[StepResponse]:
        """
        Shift one step up or down by resubmitting the full sequence to the
        reorder path. A move past either end changes nothing.
        """
        with Session(self.engine) as session:
            workflow = get_owned_workflow(session, user_id, workflow_id)
            get_workflow_step(session, workflow, step_id)
            current = [s.id for s in load_steps(session, workflow.id)]
            target = moved(current, step_id, direction)
            check_expected_version(workflow, expected_version)
            if target == current:
                return [StepResponse.model_validate(s) for s in load_steps(session, workflow.id)]

            claim_version(session, workflow, expected_version)
            steps = self._reorder(session, workflow, target)
            session.commit()

            logger.info("Moved step %s %s in workflow %s", step_id, direction, workflow.id)
            return [StepResponse.model_validate(s) for s in steps]

    def normalize(
        self,
        user_id: str,
        workflow_id: str,
        expected_version: Optional[int] = None,
    ) -> List[StepResponse]:
        """Run the corrective renumbering pass on demand."""
        with Session(self.engine) as session:
            workflow = get_owned_workflow(session, user_id, workflow_id)
            claim_version(session, workflow, expected_version)
            steps = renumber_workflow(session, workflow.id)
            session.commit()
            return [StepResponse.model_validate(s) for s in steps]

    def _reorder(self, session: Session, workflow: Workflow, step_ids: Sequence[str]) -> List[WorkflowStep]:
        steps = load_steps(session, workflow.id)
        check_reorder([s.id for s in steps], step_ids)
        by_id = {s.id: s for s in steps}
        sequence = [by_id[i] for i in step_ids]
        apply_sequence(sequence)
        return sequence

    def _commit_step(self, session: Session, step_id: str, payload: Optional[StepPayload]) -> None:
        """
        Commit a step write. The referenced prompt can be deleted after
        _check_payload saw it, and the step itself can be removed by another
        session while an update is pending.
        """
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            if not isinstance(payload, ReferencedPayload):
                raise
            logger.warning("Prompt %s vanished before step %s was written", payload.prompt_id, step_id)
            raise ValidationError(
                "prompt_id must reference one of your prompts",
                [{"path": "prompt_id", "msg": payload.prompt_id}],
            ) from exc
        except StaleDataError as exc:
            session.rollback()
            raise NotFoundError("Step", step_id) from exc

    def _check_payload(self, session: Session, user_id: str, payload: StepPayload) -> None:
        """A referenced prompt must exist and belong to the workflow's owner."""
        if isinstance(payload, CustomPayload):
            return
        prompt = session.get(Prompt, payload.prompt_id)
        if prompt is None or prompt.user_id != user_id:
            raise ValidationError(
                "prompt_id must reference one of your prompts",
                [{"path": "prompt_id", "msg": payload.prompt_id}],
            )
