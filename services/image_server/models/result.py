"""
Pipeline result models.

Standardizes the outcome of running a resource pipeline.
"""

from typing import Optional

from pydantic import BaseModel


class PipelineResult(BaseModel):
    """
    Unified result of a pipeline run.

    Used to decouple the internal pipeline from FastAPI Response objects.
    """

    success: bool
    status_code: int
    error: Optional[str] = None
    error_kind: Optional[str] = None
    stage: Optional[str] = None

    @property
    def is_auth_error(self) -> bool:
        return self.error_kind in (
            "missing_access_token",
            "incorrect_access_token",
            "unknown_public_key",
        )
