"""
Shared fixtures for the support relay test suite.

The Kayako provider performs all HTTP through KayakoProvider._send; tests
patch that method with FakeKayako.send, an in-memory helpdesk that keeps
users and cases so requester deduplication can be observed.
"""

import asyncio
import json
from typing import Any, Dict, List, Optional, Tuple

import pytest

from support_relay.config.settings import KayakoSettings, SupportSettings
from support_relay.providers.kayako import HttpResponse, KayakoProvider
from support_relay.storage.repository import SubmissionRepository


class FakeKayako:
    """
    In-memory stand-in for the Kayako REST API.

    Args:
        case_failures: Number of case POSTs answered with case_failure_status first
        case_failure_status: Status used for the failing case POSTs
        token_ttl: expires_in returned by the token endpoint
    """

    def __init__(self, case_failures: int = 0, case_failure_status: int = 503, token_ttl: int = 3600):
        self.users: Dict[str, int] = {}
        self.cases: List[Any] = []
        self.requests: List[Tuple[str, str, Optional[Dict[str, str]], Any, Any]] = []
        self.token_calls = 0
        self.user_creates = 0
        self.case_failures = case_failures
        self.case_failure_status = case_failure_status
        self.token_ttl = token_ttl
        self.fail_token = False
        self.filter_broken = False
        self.unauthorized = False

    def calls_to(self, path: str) -> List[Tuple[str, str, Optional[Dict[str, str]], Any, Any]]:
        return [request for request in self.requests if request[1] == path]

    async def send(self, method, path, headers=None, json_body=None, data=None) -> HttpResponse:
        self.requests.append((method, path, headers, json_body, data))

        if path == KayakoProvider.TOKEN_PATH:
            self.token_calls += 1
            # Yield so concurrent callers overlap on the token exchange
            await asyncio.sleep(0)
            if self.fail_token:
                return HttpResponse(400, json.dumps({"error": "invalid_client"}))
            return HttpResponse(200, json.dumps({
                "access_token": f"token-{self.token_calls}",
                "expires_in": self.token_ttl,
            }))

        if self.unauthorized:
            return HttpResponse(401, json.dumps({"errors": [{"code": "AUTHENTICATION_FAILED"}]}))

        if path == KayakoProvider.USERS_PATH:
            email = json_body["email"]
            if email in self.users:
                return HttpResponse(400, json.dumps({
                    "errors": [{"code": "FIELD_DUPLICATE", "parameter": "email", "message": "Email already in use"}]
                }))
            user_id = 100 + len(self.users)
            self.users[email] = user_id
            self.user_creates += 1
            return HttpResponse(201, json.dumps({"data": {"id": user_id}}))

        if path == KayakoProvider.USER_FILTER_PATH:
            if self.filter_broken:
                return HttpResponse(200, json.dumps({"data": []}))
            email = json_body["predicates"]["collections"][0]["propositions"][0]["value"]
            matches = [{"id": user_id} for known, user_id in self.users.items() if known == email]
            return HttpResponse(200, json.dumps({"data": matches}))

        if path == KayakoProvider.CASES_PATH:
            if self.case_failures > 0:
                self.case_failures -= 1
                return HttpResponse(self.case_failure_status, "Service Unavailable")
            case_id = 5000 + len(self.cases)
            self.cases.append(json_body if json_body is not None else data)
            return HttpResponse(201, json.dumps({"data": {"id": case_id}}))

        if path == KayakoProvider.ME_PATH:
            return HttpResponse(200, json.dumps({"data": {"id": 1}}))

        return HttpResponse(404, "")


@pytest.fixture
def fake_kayako():
    return FakeKayako()


@pytest.fixture
def kayako_settings():
    """OAuth-configured Kayako settings."""
    return KayakoSettings(
        url="https://support.example.com/",
        client_id="client-1",
        client_secret="secret-1",
    )


@pytest.fixture
def support_settings(kayako_settings):
    return SupportSettings(
        provider="kayako",
        form_handle="support_contact",
        field_mapping={
            "email": "email",
            "message": "message",
            "name": "name",
            "subject": "subject",
            "priority": "priority",
            "attachments": "attachments",
        },
        database_url="sqlite://",
        kayako=kayako_settings,
    )


@pytest.fixture
def repository():
    """Submission repository on a private in-memory database."""
    return SubmissionRepository.from_url("sqlite://")
