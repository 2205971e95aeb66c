from fastapi import APIRouter, Depends

from promptlab.deps import current_user, prompt_repo, tag_repo, workflow_repo
from promptlab.schemas import DashboardResponse, PromptResponse
from promptlab.services.prompts import PromptRepository
from promptlab.services.tags import TagRepository
from promptlab.services.workflows import WorkflowRepository

router = APIRouter()

RECENT_LIMIT = 5


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    user_id: str = Depends(current_user),
    prompts: PromptRepository = Depends(prompt_repo),
    tags: TagRepository = Depends(tag_repo),
    workflows: WorkflowRepository = Depends(workflow_repo),
):
    recent = prompts.list(user_id, limit=RECENT_LIMIT)
    return DashboardResponse(
        prompt_count=prompts.count(user_id),
        pinned_count=prompts.pinned_count(user_id),
        tag_count=tags.count(user_id),
        workflow_count=workflows.count(user_id),
        recent_prompts=[PromptResponse.model_validate(p.model_dump()) for p in recent],
        recent_workflows=workflows.list(user_id, limit=RECENT_LIMIT),
    )
