"""
API endpoint tests for the support relay.

These tests verify the submission webhook, provider status and health
endpoints using FastAPI's TestClient with a mocked pipeline.

Testing Strategy:
- Every well-formed submission is acknowledged with 202
- Pipeline failures never surface as request errors
- Validation errors use the standardized error payload
"""

import asyncio
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock, patch

from support_relay.api.dependencies import get_pipeline
from support_relay.api.main import create_application
from support_relay.config.settings import SpamSettings, SupportSettings
from support_relay.models import PipelineResult, PipelineStatus


@pytest.fixture
def mock_pipeline():
    """
    Create a mock pipeline returning a queued result.
    """
    pipeline = MagicMock()
    pipeline.handle = AsyncMock(return_value=PipelineResult(status=PipelineStatus.QUEUED, record_id="rec-1"))
    pipeline.provider.name = "Kayako"
    pipeline.provider.is_configured.return_value = True
    pipeline.provider.test_connection = AsyncMock(return_value=True)
    return pipeline


@pytest.fixture
def client(mock_pipeline):
    with patch("support_relay.api.main.configure_logging"):
        app = create_application(settings=SupportSettings(), pipeline=mock_pipeline)
    return TestClient(app)


class TestSubmissionEndpoint:
    """Tests for POST /submissions."""

    def test_submission_acknowledged(self, client, mock_pipeline):
        response = client.post(
            "/submissions",
            json={"form_handle": "support_contact", "fields": {"email": "a@b.com", "message": "Hello"}},
            headers={"User-Agent": "form-host/1.0"},
        )

        assert response.status_code == 202
        assert response.json() == {"status": "received", "outcome": "queued", "record_id": "rec-1"}

        submission = mock_pipeline.handle.await_args.args[0]
        assert submission.form_handle == "support_contact"
        assert submission.fields == {"email": "a@b.com", "message": "Hello"}
        assert submission.user_agent == "form-host/1.0"
        assert submission.client_ip == "testclient"

    def test_spam_is_still_acknowledged(self, client, mock_pipeline):
        mock_pipeline.handle.return_value = PipelineResult(status=PipelineStatus.SPAM, record_id="rec-2")

        response = client.post("/submissions", json={"form_handle": "support_contact", "fields": {}})

        assert response.status_code == 202
        assert response.json()["outcome"] == "spam"

    def test_pipeline_error_is_acknowledged(self, client, mock_pipeline):
        mock_pipeline.handle.side_effect = RuntimeError("database unavailable")

        response = client.post("/submissions", json={"form_handle": "support_contact", "fields": {}})

        assert response.status_code == 202
        assert response.json() == {"status": "received", "outcome": "error", "record_id": None}

    def test_blank_form_handle_rejected(self, client, mock_pipeline):
        response = client.post("/submissions", json={"form_handle": "  ", "fields": {}})

        assert response.status_code == 422
        body = response.json()
        assert body["status"] == "error"
        assert body["error_code"] == "VALIDATION_ERROR"
        assert body["validation_errors"][0]["loc"][-1] == "form_handle"
        mock_pipeline.handle.assert_not_awaited()


class TestProviderEndpoint:
    """Tests for GET /provider/status."""

    def test_connected_provider(self, client):
        response = client.get("/provider/status")

        assert response.status_code == 200
        assert response.json() == {"name": "Kayako", "configured": True, "connected": True}

    def test_unconfigured_provider_not_contacted(self, client, mock_pipeline):
        mock_pipeline.provider.is_configured.return_value = False

        response = client.get("/provider/status")

        assert response.json() == {"name": "Kayako", "configured": False, "connected": False}
        mock_pipeline.provider.test_connection.assert_not_awaited()


class TestMiscEndpoints:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_unknown_route_uses_error_payload(self, client):
        response = client.get("/nope")

        assert response.status_code == 404
        assert response.json()["error_code"] == "HTTP_404"


class TestApplicationSetup:

    def test_logging_configured_with_spam_audit_file(self, mock_pipeline):
        settings = SupportSettings(log_level="WARNING", spam=SpamSettings(log_file="/var/log/relay-spam.log"))

        with patch("support_relay.api.main.configure_logging") as mock_configure:
            create_application(settings=settings, pipeline=mock_pipeline)

        mock_configure.assert_called_once_with(
            "WARNING",
            None,
            spam_channel="support_relay.spam",
            spam_log_file="/var/log/relay-spam.log",
        )

    def test_pipeline_built_lazily_on_first_request(self, mock_pipeline):
        with patch("support_relay.api.main.configure_logging"):
            app = create_application(settings=SupportSettings())

        with patch("support_relay.api.dependencies.SupportFormPipeline.from_settings",
                   return_value=mock_pipeline) as mock_build:
            client = TestClient(app)
            client.get("/provider/status")
            client.get("/provider/status")

        mock_build.assert_called_once_with(app.state.settings)

    def test_concurrent_first_requests_share_one_pipeline(self, mock_pipeline):
        request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(settings=SupportSettings(), pipeline=None)))

        async def resolve_many():
            return await asyncio.gather(*[get_pipeline(request) for _ in range(5)])

        with patch("support_relay.api.dependencies.SupportFormPipeline.from_settings",
                   return_value=mock_pipeline) as mock_build:
            pipelines = asyncio.run(resolve_many())

        mock_build.assert_called_once()
        assert all(pipeline is mock_pipeline for pipeline in pipelines)
