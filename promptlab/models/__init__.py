from .base import Timestamped
from .prompt import Prompt, Tag, PromptTag, PinnedPrompt, DEFAULT_TAG_COLOR
from .workflow import Workflow, WorkflowStep

__all__ = [
    "Timestamped",
    "Prompt", "Tag", "PromptTag", "PinnedPrompt", "DEFAULT_TAG_COLOR",
    "Workflow", "WorkflowStep",
]
