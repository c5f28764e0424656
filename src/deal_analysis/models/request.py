"""
AnalysisRequest: the invocation contract for POST /analyze.

Request body: {dealData, dealId, userId}. dealId and userId are mandatory;
dealData must be a JSON object. Anything else raises RequestValidationError,
the only error class that reaches the caller.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..errors import RequestValidationError
from .snapshot import DealSnapshot


class AnalysisRequest(BaseModel):
    """Validated request envelope for one pipeline run."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    deal_data: dict[str, Any] = Field(..., alias='dealData')
    deal_id: str = Field(..., alias='dealId', min_length=1)
    user_id: str = Field(..., alias='userId', min_length=1)

    @classmethod
    def from_body(cls, body: Any) -> AnalysisRequest:
        """
        Validate a decoded JSON body.

        Raises:
            RequestValidationError: If the body is not an object or is missing
                dealData, dealId or userId
        """
        if not isinstance(body, dict):
            raise RequestValidationError(
                'Request body must be a JSON object',
                context={'body_type': type(body).__name__},
            )
        try:
            return cls.model_validate(body)
        except PydanticValidationError as e:
            fields = sorted({str(err['loc'][0]) for err in e.errors() if err.get('loc')})
            raise RequestValidationError(
                f"Invalid analysis request: missing or invalid {', '.join(fields) or 'fields'}",
                context={'fields': fields},
            ) from e

    def snapshot(self) -> DealSnapshot:
        """Normalize dealData into the immutable DealSnapshot."""
        return DealSnapshot.from_payload(self.deal_data)
