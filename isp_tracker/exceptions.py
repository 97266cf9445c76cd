"""
Domain errors raised by the workflow engine and stores.

The API layer maps these onto HTTP responses in main.py:
  ValidationError    -> 400 (with field-level errors)
  TransitionRejected -> 400
  NotFoundError      -> 404
  DependencyFailure  -> 502
  StoreFailure       -> 500
"""
from typing import Any, Dict, List, Optional


class TrackerError(Exception):
    """Base class for all project tracker errors"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TrackerError):
    """Malformed or out-of-range input"""
    status_code = 400

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, errors=[{"loc": [field], "msg": message}])


class NotFoundError(TrackerError):
    status_code = 404

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class TransitionRejected(TrackerError):
    """Stage change that breaks the ordering rule"""
    status_code = 400

    def __init__(self, current_stage: int, target_stage: int):
        super().__init__(
            f"Cannot move project from stage {current_stage} to stage {target_stage}"
        )
        self.current_stage = current_stage
        self.target_stage = target_stage


class DependencyFailure(TrackerError):
    """Email delivery or file storage failed"""
    status_code = 502


class StoreFailure(TrackerError):
    """Unexpected persistence-layer error"""
    status_code = 500
