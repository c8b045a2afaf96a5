"""
Submission API Models

Request and response bodies for the form-submission webhook and the
provider status endpoint.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


class SubmissionEvent(BaseModel):
    """
    Form-submission event posted by the host form system.
    """
    form_handle: str = Field(
        ...,
        description="Handle of the submitted form"
    )
    fields: Dict[str, Any] = Field(
        default_factory=dict,
        description="Raw field values keyed by form field handle"
    )

    @field_validator("form_handle")
    @classmethod
    def validate_form_handle(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("form_handle must not be empty")
        return value


class SubmissionReceipt(BaseModel):
    """
    Acknowledgement returned for every accepted request.

    The status is always "received"; outcome tells the host what the
    pipeline did, for its own bookkeeping.
    """
    status: str = Field(default="received")
    outcome: str = Field(..., description="Pipeline outcome")
    record_id: Optional[str] = Field(default=None, description="Local record identifier")


class ProviderStatus(BaseModel):
    name: str
    configured: bool
    connected: bool
