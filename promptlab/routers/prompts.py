from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from promptlab.deps import current_user, prompt_repo
from promptlab.schemas import PromptCreateDTO, PromptUpdateDTO, PromptWithTags, TagIdsDTO, TagResponse
from promptlab.services.prompts import PromptRepository
from promptlab.util.pagination import clamp_limit, clamp_offset

router = APIRouter()


@router.get("/prompts", response_model=List[PromptWithTags])
def list_prompts(
    q: Optional[str] = None,
    tag_id: Optional[str] = None,
    pinned: bool = False,
    limit: Optional[int] = Query(default=None),
    offset: Optional[int] = Query(default=None),
    user_id: str = Depends(current_user),
    repo: PromptRepository = Depends(prompt_repo),
):
    return repo.list(
        user_id,
        query=q,
        tag_id=tag_id,
        pinned=pinned,
        limit=clamp_limit(limit),
        offset=clamp_offset(offset),
    )


@router.post("/prompts", response_model=PromptWithTags, status_code=status.HTTP_201_CREATED)
def create_prompt(body: PromptCreateDTO, user_id: str = Depends(current_user), repo: PromptRepository = Depends(prompt_repo)):
    return repo.create(user_id, body)


@router.get("/prompts/{prompt_id}", response_model=PromptWithTags)
def get_prompt(prompt_id: str, user_id: str = Depends(current_user), repo: PromptRepository = Depends(prompt_repo)):
    return repo.get(user_id, prompt_id)


@router.patch("/prompts/{prompt_id}", response_model=PromptWithTags)
def update_prompt(
    prompt_id: str,
    body: PromptUpdateDTO,
    user_id: str = Depends(current_user),
    repo: PromptRepository = Depends(prompt_repo),
):
    return repo.update(user_id, prompt_id, body)


@router.delete("/prompts/{prompt_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_prompt(prompt_id: str, user_id: str = Depends(current_user), repo: PromptRepository = Depends(prompt_repo)):
    repo.delete(user_id, prompt_id)


@router.get("/prompts/{prompt_id}/tags", response_model=List[TagResponse])
def prompt_tags(prompt_id: str, user_id: str = Depends(current_user), repo: PromptRepository = Depends(prompt_repo)):
    return repo.tags_of(user_id, prompt_id)


@router.post("/prompts/{prompt_id}/tags", response_model=List[TagResponse])
def add_prompt_tags(
    prompt_id: str,
    body: TagIdsDTO,
    user_id: str = Depends(current_user),
    repo: PromptRepository = Depends(prompt_repo),
):
    return repo.add_tags(user_id, prompt_id, body.tag_ids)


@router.delete("/prompts/{prompt_id}/tags/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_prompt_tag(
    prompt_id: str,
    tag_id: str,
    user_id: str = Depends(current_user),
    repo: PromptRepository = Depends(prompt_repo),
):
    repo.remove_tag(user_id, prompt_id, tag_id)


@router.put("/prompts/{prompt_id}/pin", response_model=PromptWithTags)
def pin_prompt(prompt_id: str, user_id: str = Depends(current_user), repo: PromptRepository = Depends(prompt_repo)):
    return repo.pin(user_id, prompt_id)


@router.delete("/prompts/{prompt_id}/pin", response_model=PromptWithTags)
def unpin_prompt(prompt_id: str, user_id: str = Depends(current_user), repo: PromptRepository = Depends(prompt_repo)):
    return repo.unpin(user_id, prompt_id)
