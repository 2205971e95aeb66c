"""
Domain errors.

Services raise these; the application turns them into the JSON error envelope
in ``promptlab.main``. Routers never catch them.
"""
from typing import Any, Dict, List, Optional


class PromptLabError(Exception):
    status_code = 500
    code = "INTERNAL"

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []

    def to_dict(self) -> Dict[str, Any]:
        return {"error": {"code": self.code, "message": self.message, "details": self.details}}


class NotFoundError(PromptLabError):
    """Unknown id, or an id owned by somebody else. Callers cannot tell which."""

    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found", [{"path": "id", "msg": entity_id}])
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(PromptLabError):
    status_code = 422
    code = "VALIDATION_ERROR"


class ConflictError(PromptLabError):
    status_code = 409
    code = "CONFLICT"
