"""
Domain errors raised by the service layer.

Routes translate these into HTTP responses with http_error(); services never
depend on request/response objects.
"""

from typing import Any, Dict, List, Optional

from fastapi import HTTPException


class SchedulingError(Exception):
    """Base exception for scheduling core errors"""

    code = "SCHEDULING_ERROR"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_detail(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class NotFoundError(SchedulingError):
    """A referenced entity does not exist or belongs to another organization"""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, resource_id: Any = None):
        if resource_id is not None:
            message = f"{resource} with id '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(message, {"resource": resource, "id": resource_id})
        self.resource = resource
        self.resource_id = resource_id


class ValidationError(SchedulingError):
    """Structural problem with the submitted data; carries every offending row/field"""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, errors: Optional[List[Any]] = None):
        self.errors = list(errors or [])
        super().__init__(message, {"errors": _dump_all(self.errors)} if self.errors else None)


class ConflictsPresentError(SchedulingError):
    """Import rows overlap blockers and the caller did not acknowledge them"""

    code = "CONFLICTS_PRESENT"
    status_code = 409

    def __init__(self, message: str, conflicts: Optional[List[Any]] = None):
        self.conflicts = list(conflicts or [])
        super().__init__(message, {"conflicts": _dump_all(self.conflicts)})


def _dump_all(items: List[Any]) -> List[Any]:
    return [item.model_dump(mode="json") if hasattr(item, "model_dump") else item for item in items]


def http_error(exc: SchedulingError) -> HTTPException:
    """Build the HTTPException a route should raise for a domain error"""
    return HTTPException(status_code=exc.status_code, detail=exc.to_detail())
