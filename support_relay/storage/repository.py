"""
Submission Repository Implementation

Data access for the local submission record. Methods return dictionaries
rather than ORM objects so callers never touch a closed session.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy.orm import sessionmaker

from support_relay.storage.database import build_session_factory, session_scope
from support_relay.storage.models import DeliveryStatus, SubmissionRecord

logger = logging.getLogger(__name__)


class SubmissionStore(Protocol):
    """Persistence operations the pipeline and delivery task depend on."""

    async def record_submission(self, form_handle: str, data: Dict[str, Any]) -> str:
        ...

    async def mark_spam(self, record_id: str, reason: str) -> None:
        ...

    async def mark_delivery(self,
                            record_id: str,
                            status: str,
                            case_id: Optional[str] = None,
                            error: Optional[str] = None,
                            attempts: Optional[int] = None) -> None:
        ...


def _json_safe(data: Dict[str, Any]) -> Dict[str, Any]:
    return json.loads(json.dumps(data, default=str))


class SubmissionRepository:
    """
    SQLAlchemy-backed submission store.

    Args:
        session_factory: Bound sessionmaker
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str) -> "SubmissionRepository":
        return cls(build_session_factory(database_url))

    async def record_submission(self, form_handle: str, data: Dict[str, Any]) -> str:
        """
        Persist a submission as received.

        Args:
            form_handle: Handle of the originating form
            data: Mapped submission fields

        Returns:
            Identifier of the new record
        """
        with session_scope(self.session_factory) as session:
            record = SubmissionRecord(
                form_handle=form_handle,
                email=data.get("email"),
                data=_json_safe(data),
                delivery_status=DeliveryStatus.PENDING,
            )
            session.add(record)
            session.flush()
            record_id = record.id

        logger.debug(f"Stored submission {record_id} for form {form_handle}")
        return record_id

    async def mark_spam(self, record_id: str, reason: str) -> None:
        with session_scope(self.session_factory) as session:
            record = self._get_or_raise(session, record_id)
            record.is_spam = True
            record.spam_reason = reason
            record.delivery_status = DeliveryStatus.NOT_SENT

    async def mark_delivery(self,
                            record_id: str,
                            status: str,
                            case_id: Optional[str] = None,
                            error: Optional[str] = None,
                            attempts: Optional[int] = None) -> None:
        """
        Update delivery tracking on a record.

        Raises:
            KeyError: If the record does not exist
        """
        with session_scope(self.session_factory) as session:
            record = self._get_or_raise(session, record_id)
            record.delivery_status = status
            if case_id is not None:
                record.case_id = case_id
            if error is not None:
                record.last_error = error
            if attempts is not None:
                record.attempts = attempts

    async def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        with session_scope(self.session_factory) as session:
            record = session.get(SubmissionRecord, record_id)
            return record.to_dict() if record else None

    async def list_by_status(self, status: str, limit: int = 100) -> List[Dict[str, Any]]:
        with session_scope(self.session_factory) as session:
            records = (
                session.query(SubmissionRecord)
                .filter(SubmissionRecord.delivery_status == status)
                .order_by(SubmissionRecord.created_at.desc())
                .limit(limit)
                .all()
            )
            return [record.to_dict() for record in records]

    @staticmethod
    def _get_or_raise(session, record_id: str) -> SubmissionRecord:
        record = session.get(SubmissionRecord, record_id)
        if record is None:
            raise KeyError(f"Submission record {record_id} not found")
        return record
