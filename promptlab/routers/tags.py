from typing import List

from fastapi import APIRouter, Depends, status

from promptlab.deps import current_user, tag_repo
from promptlab.schemas import TagCreateDTO, TagResponse, TagUpdateDTO
from promptlab.services.tags import TagRepository

router = APIRouter()


@router.get("/tags", response_model=List[TagResponse])
def list_tags(user_id: str = Depends(current_user), repo: TagRepository = Depends(tag_repo)):
    return repo.list(user_id)


@router.post("/tags", response_model=TagResponse, status_code=status.HTTP_201_CREATED)
def create_tag(body: TagCreateDTO, user_id: str = Depends(current_user), repo: TagRepository = Depends(tag_repo)):
    return repo.create(user_id, body)


@router.get("/tags/{tag_id}", response_model=TagResponse)
def get_tag(tag_id: str, user_id: str = Depends(current_user), repo: TagRepository = Depends(tag_repo)):
    return repo.get(user_id, tag_id)


@router.patch("/tags/{tag_id}", response_model=TagResponse)
def update_tag(tag_id: str, body: TagUpdateDTO, user_id: str = Depends(current_user), repo: TagRepository = Depends(tag_repo)):
    return repo.update(user_id, tag_id, body)


@router.delete("/tags/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tag(tag_id: str, user_id: str = Depends(current_user), repo: TagRepository = Depends(tag_repo)):
    repo.delete(user_id, tag_id)
