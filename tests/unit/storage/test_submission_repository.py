"""
Unit tests for the local submission record.

Uses an in-memory SQLite database per test.
"""

from datetime import date

import pytest

from support_relay.storage.database import build_engine, session_scope
from support_relay.storage.models import DeliveryStatus, SubmissionRecord


@pytest.mark.asyncio
class TestSubmissionRepository:
    """Test suite for SubmissionRepository."""

    async def test_record_submission(self, repository):
        record_id = await repository.record_submission(
            "support_contact",
            {"email": "a@b.com", "message": "Hello", "received": date(2026, 1, 2)},
        )

        record = await repository.get(record_id)
        assert record["form_handle"] == "support_contact"
        assert record["email"] == "a@b.com"
        assert record["data"] == {"email": "a@b.com", "message": "Hello", "received": "2026-01-02"}
        assert record["delivery_status"] == DeliveryStatus.PENDING
        assert record["is_spam"] is False
        assert record["attempts"] == 0

    async def test_mark_spam(self, repository):
        record_id = await repository.record_submission("support_contact", {"email": "a@b.com"})

        await repository.mark_spam(record_id, "pattern_match")

        record = await repository.get(record_id)
        assert record["is_spam"] is True
        assert record["spam_reason"] == "pattern_match"
        assert record["delivery_status"] == DeliveryStatus.NOT_SENT

    async def test_mark_delivery_keeps_unspecified_fields(self, repository):
        record_id = await repository.record_submission("support_contact", {"email": "a@b.com"})

        await repository.mark_delivery(record_id, DeliveryStatus.QUEUED, error="timeout", attempts=1)
        await repository.mark_delivery(record_id, DeliveryStatus.DELIVERED, case_id="5000", attempts=2)

        record = await repository.get(record_id)
        assert record["delivery_status"] == DeliveryStatus.DELIVERED
        assert record["case_id"] == "5000"
        assert record["attempts"] == 2
        assert record["last_error"] == "timeout"

    async def test_mark_delivery_unknown_record(self, repository):
        with pytest.raises(KeyError):
            await repository.mark_delivery("missing", DeliveryStatus.FAILED)

    async def test_get_unknown_record(self, repository):
        assert await repository.get("missing") is None

    async def test_list_by_status(self, repository):
        failed_id = await repository.record_submission("support_contact", {"email": "a@b.com"})
        await repository.record_submission("support_contact", {"email": "c@d.com"})
        await repository.mark_delivery(failed_id, DeliveryStatus.FAILED, error="gave up", attempts=5)

        failed = await repository.list_by_status(DeliveryStatus.FAILED)

        assert [record["id"] for record in failed] == [failed_id]
        assert failed[0]["last_error"] == "gave up"


class TestDatabase:
    """Test suite for engine and session helpers."""

    def test_file_database_creates_directory(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'nested' / 'relay.db'}"

        build_engine(url)

        assert (tmp_path / "nested").is_dir()

    def test_session_scope_rolls_back_on_error(self, repository):
        with pytest.raises(RuntimeError):
            with session_scope(repository.session_factory) as session:
                session.add(SubmissionRecord(form_handle="support_contact", data={}))
                session.flush()
                raise RuntimeError("boom")

        with session_scope(repository.session_factory) as session:
            assert session.query(SubmissionRecord).count() == 0
