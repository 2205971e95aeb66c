from typing import List, Optional

from fastapi import APIRouter, Depends, status

from promptlab.deps import current_user, step_sequencer, workflow_repo
from promptlab.schemas import (
    MoveDTO,
    ReorderDTO,
    StepCreateDTO,
    StepResponse,
    StepUpdateDTO,
    VersionDTO,
    WorkflowCreateDTO,
    WorkflowResponse,
    WorkflowUpdateDTO,
    WorkflowWithSteps,
)
from promptlab.services.sequencer import StepSequencer
from promptlab.services.workflows import WorkflowRepository

router = APIRouter()


@router.get("/workflows", response_model=List[WorkflowResponse])
def list_workflows(user_id: str = Depends(current_user), repo: WorkflowRepository = Depends(workflow_repo)):
    return repo.list(user_id)


@router.post("/workflows", response_model=WorkflowResponse, status_code=status.HTTP_201_CREATED)
def create_workflow(body: WorkflowCreateDTO, user_id: str = Depends(current_user), repo: WorkflowRepository = Depends(workflow_repo)):
    return repo.create(user_id, body)


@router.get("/workflows/{workflow_id}", response_model=WorkflowWithSteps)
def get_workflow(workflow_id: str, user_id: str = Depends(current_user), repo: WorkflowRepository = Depends(workflow_repo)):
    return repo.get(user_id, workflow_id)


@router.patch("/workflows/{workflow_id}", response_model=WorkflowResponse)
def update_workflow(
    workflow_id: str,
    body: WorkflowUpdateDTO,
    user_id: str = Depends(current_user),
    repo: WorkflowRepository = Depends(workflow_repo),
):
    return repo.update(user_id, workflow_id, body)


@router.delete("/workflows/{workflow_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_workflow(workflow_id: str, user_id: str = Depends(current_user), repo: WorkflowRepository = Depends(workflow_repo)):
    repo.delete(user_id, workflow_id)


# ============================================================================
# Steps
# ============================================================================

@router.post("/workflows/{workflow_id}/steps", response_model=StepResponse, status_code=status.HTTP_201_CREATED)
def append_step(
    workflow_id: str,
    body: StepCreateDTO,
    user_id: str = Depends(current_user),
    sequencer: StepSequencer = Depends(step_sequencer),
):
    return sequencer.append(user_id, workflow_id, body.payload(), notes=body.notes, expected_version=body.expected_version)


@router.put("/workflows/{workflow_id}/steps/order", response_model=List[StepResponse])
def reorder_steps(
    workflow_id: str,
    body: ReorderDTO,
    user_id: str = Depends(current_user),
    sequencer: StepSequencer = Depends(step_sequencer),
):
    return sequencer.reorder(user_id, workflow_id, body.step_ids, expected_version=body.expected_version)


@router.post("/workflows/{workflow_id}/steps/normalize", response_model=List[StepResponse])
def normalize_steps(
    workflow_id: str,
    body: Optional[VersionDTO] = None,
    user_id: str = Depends(current_user),
    sequencer: StepSequencer = Depends(step_sequencer),
):
    expected = body.expected_version if body else None
    return sequencer.normalize(user_id, workflow_id, expected_version=expected)


@router.patch("/workflows/{workflow_id}/steps/{step_id}", response_model=StepResponse)
def update_step(
    workflow_id: str,
    step_id: str,
    body: StepUpdateDTO,
    user_id: str = Depends(current_user),
    sequencer: StepSequencer = Depends(step_sequencer),
):
    return sequencer.update(user_id, workflow_id, step_id, body)


@router.delete("/workflows/{workflow_id}/steps/{step_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_step(
    workflow_id: str,
    step_id: str,
    expected_version: Optional[int] = None,
    user_id: str = Depends(current_user),
    sequencer: StepSequencer = Depends(step_sequencer),
):
    sequencer.remove(user_id, workflow_id, step_id, expected_version=expected_version)


@router.post("/workflows/{workflow_id}/steps/{step_id}/move", response_model=List[StepResponse])
def move_step(
    workflow_id: str,
    step_id: str,
    body: MoveDTO,
    user_id: str = Depends(current_user),
    sequencer: StepSequencer = Depends(step_sequencer),
):
    return sequencer.move(user_id, workflow_id, step_id, body.direction, expected_version=body.expected_version)
