"""
API DTOs and the step payload variant.
"""

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .errors import ValidationError


# ============================================================================
# STEP PAYLOAD (tagged variant used inside the services)
# ============================================================================

class ReferencedPayload(BaseModel):
    """Step that runs a saved prompt."""
    kind: Literal["prompt"] = "prompt"
    prompt_id: str


class CustomPayload(BaseModel):
    """Step that carries its own prompt text."""
    kind: Literal["custom"] = "custom"
    text: str


StepPayload = Annotated[Union[ReferencedPayload, CustomPayload], Field(discriminator="kind")]


def payload_from_fields(prompt_id: Optional[str], custom_prompt: Optional[str]) -> StepPayload:
    """
    Convert the wire shape (two nullable fields) into a StepPayload.
    Exactly one of them must be set; blank custom text counts as unset.
    """
    has_prompt = bool(prompt_id)
    has_custom = custom_prompt is not None and custom_prompt.strip() != ""
    if has_prompt and has_custom:
        raise ValidationError(
            "A step takes either prompt_id or custom_prompt, not both",
            [{"path": "prompt_id", "msg": "mutually exclusive with custom_prompt"}],
        )
    if not has_prompt and not has_custom:
        raise ValidationError(
            "A step needs prompt_id or custom_prompt",
            [{"path": "prompt_id", "msg": "one of prompt_id or custom_prompt is required"}],
        )
    if has_prompt:
        return ReferencedPayload(prompt_id=prompt_id)
    return CustomPayload(text=custom_prompt)


# ============================================================================
# PROMPTS & TAGS
# ============================================================================

class TagCreateDTO(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    color: Optional[str] = None


class TagUpdateDTO(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=64)
    color: Optional[str] = None


class TagResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    name: str
    color: str
    created_at: datetime


class PromptCreateDTO(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    content: str = Field(min_length=1)
    tag_ids: List[str] = []


class PromptUpdateDTO(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    content: Optional[str] = Field(default=None, min_length=1)


class PromptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    content: str
    created_at: datetime
    updated_at: datetime


class PromptWithTags(PromptResponse):
    tags: List[TagResponse] = []
    is_pinned: bool = False


class TagIdsDTO(BaseModel):
    tag_ids: List[str] = Field(min_length=1)


# ============================================================================
# WORKFLOWS
# ============================================================================

class WorkflowCreateDTO(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None


class WorkflowUpdateDTO(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None


class WorkflowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    version: int
    created_at: datetime
    updated_at: datetime


class StepCreateDTO(BaseModel):
    """Step as sent by the client: exactly one of prompt_id / custom_prompt."""
    prompt_id: Optional[str] = None
    custom_prompt: Optional[str] = None
    notes: Optional[str] = None
    expected_version: Optional[int] = None

    def payload(self) -> StepPayload:
        return payload_from_fields(self.prompt_id, self.custom_prompt)


class StepUpdateDTO(BaseModel):
    """
    Partial step update. Payload fields are only considered when at least one
    is present, and then they replace the payload as a whole.
    """
    prompt_id: Optional[str] = None
    custom_prompt: Optional[str] = None
    notes: Optional[str] = None

    def payload(self) -> Optional[StepPayload]:
        fields = self.model_fields_set & {"prompt_id", "custom_prompt"}
        if not fields:
            return None
        return payload_from_fields(self.prompt_id, self.custom_prompt)


class StepResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    workflow_id: str
    step_order: int
    prompt_id: Optional[str] = None
    custom_prompt: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


class StepWithPrompt(StepResponse):
    prompt: Optional[PromptResponse] = None


class WorkflowWithSteps(WorkflowResponse):
    steps: List[StepWithPrompt] = []


class ReorderDTO(BaseModel):
    step_ids: List[str]
    expected_version: Optional[int] = None


class MoveDTO(BaseModel):
    direction: Literal["up", "down"]
    expected_version: Optional[int] = None


class VersionDTO(BaseModel):
    expected_version: Optional[int] = None


# ============================================================================
# DASHBOARD
# ============================================================================

class DashboardResponse(BaseModel):
    prompt_count: int
    pinned_count: int
    tag_count: int
    workflow_count: int
    recent_prompts: List[PromptResponse]
    recent_workflows: List[WorkflowResponse]
