"""
Shared data models for support form processing.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class SpamReason(Enum):
    """Reason codes attached to a spam verdict."""
    FORBIDDEN_WORD = "forbidden_word"
    PATTERN_MATCH = "pattern_match"
    SUSPICIOUS_NAME = "suspicious_name"
    GIBBERISH_NAME = "gibberish_name"
    MESSAGE_TOO_SHORT = "message_too_short"
    MESSAGE_TOO_LONG = "message_too_long"
    NONE = "none"


@dataclass(frozen=True)
class SpamVerdict:
    """Accept/reject decision for a submission."""
    is_spam: bool
    reason: SpamReason = SpamReason.NONE
    detail: Optional[str] = None

    @classmethod
    def accept(cls) -> "SpamVerdict":
        return cls(is_spam=False)

    @classmethod
    def reject(cls, reason: SpamReason, detail: Optional[str] = None) -> "SpamVerdict":
        return cls(is_spam=True, reason=reason, detail=detail)


@dataclass(frozen=True)
class FormSubmission:
    """Inbound form-submission event as emitted by the host form system."""
    form_handle: str
    fields: Dict[str, Any]
    client_ip: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass(frozen=True)
class ResolvedAttachment:
    """Attachment reference resolved by the external asset store."""
    path: str
    filename: str
    mime_type: str = "application/octet-stream"
    source_id: Optional[str] = None


@dataclass
class CaseRequest:
    """
    Normalized payload handed to a support provider.

    Built once per accepted submission and consumed exactly once by the
    delivery task.

    Attributes:
        email: Submitter email address (required)
        message: Submission body (required)
        name: Optional submitter name
        subject: Optional case subject
        priority: Optional priority label (low, normal, high, urgent)
        resolved_attachments: Attachments already resolved to local files
        record_id: Identifier of the local submission record, if persisted
    """
    email: str
    message: str
    name: Optional[str] = None
    subject: Optional[str] = None
    priority: Optional[str] = None
    resolved_attachments: List[ResolvedAttachment] = field(default_factory=list)
    record_id: Optional[str] = None

    def __post_init__(self):
        if not self.email or not self.email.strip():
            raise ValueError("CaseRequest requires an email")
        if not self.message or not self.message.strip():
            raise ValueError("CaseRequest requires a message")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "email": self.email,
            "message": self.message,
            "name": self.name,
            "subject": self.subject,
            "priority": self.priority,
            "resolved_attachments": [
                {
                    "path": a.path,
                    "filename": a.filename,
                    "mime_type": a.mime_type,
                    "source_id": a.source_id,
                }
                for a in self.resolved_attachments
            ],
            "record_id": self.record_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CaseRequest":
        return cls(
            email=data.get("email", ""),
            message=data.get("message", ""),
            name=data.get("name"),
            subject=data.get("subject"),
            priority=data.get("priority"),
            resolved_attachments=[
                ResolvedAttachment(**a) for a in data.get("resolved_attachments") or []
            ],
            record_id=data.get("record_id"),
        )


@dataclass(frozen=True)
class CaseResult:
    """Helpdesk case identifier plus the unprocessed response body."""
    id: Optional[str]
    provider: str
    raw: Any = None


class PipelineStatus(Enum):
    """Terminal outcome of one pipeline run."""
    IGNORED = "ignored"
    SPAM = "spam"
    STORED_LOCALLY = "stored_locally"
    INCOMPLETE = "incomplete"
    QUEUED = "queued"
    ENQUEUE_FAILED = "enqueue_failed"


@dataclass(frozen=True)
class PipelineResult:
    status: PipelineStatus
    record_id: Optional[str] = None
    verdict: Optional[SpamVerdict] = None
