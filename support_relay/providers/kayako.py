"""
Kayako Helpdesk Provider Implementation

Turns a normalized case request into calls against the Kayako REST API:
authentication, requester resolution, case assembly and creation.

Design Considerations:
- OAuth client-credentials with a shared, injected token cache, or basic auth
- Create-then-search requester resolution so concurrent submissions for the
  same email never produce duplicate requesters
- Every request bounded by the configured timeout
- No internal retry; failures are raised to the delivery task
"""

import asyncio
import html
import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from support_relay.auth.token_cache import TokenCache
from support_relay.config.settings import KayakoSettings
from support_relay.errors import ApiError, AuthError, ConfigurationError, TransportError
from support_relay.models import CaseRequest, CaseResult, ResolvedAttachment
from support_relay.providers.base import SupportProvider

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "Support Request"
FORM_FOOTER = "Submitted via Support Contact Form"
TOKEN_EXPIRY_MARGIN = 60
DEFAULT_TOKEN_LIFETIME = 3600

_NEWLINE = re.compile(r"(\r\n|\r|\n)")


@dataclass
class HttpResponse:
    """Minimal response snapshot detached from the aiohttp session."""
    status: int
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        if not self.text:
            return None
        try:
            return json.loads(self.text)
        except ValueError:
            return None


def nl2br(text: str) -> str:
    """Insert HTML line breaks before every newline."""
    return _NEWLINE.sub(r"<br />\1", text)


class KayakoProvider(SupportProvider):
    """
    Kayako API client implementing the support provider interface.

    Args:
        settings: Kayako connection and case defaults
        token_cache: Shared token cache; a private one is created if omitted
    """

    TOKEN_PATH = "/oauth/token"
    USERS_PATH = "/api/v1/users.json"
    USER_FILTER_PATH = "/api/v1/users/filter.json"
    CASES_PATH = "/api/v1/cases.json"
    ME_PATH = "/api/v1/me.json"

    def __init__(self, settings: Optional[KayakoSettings] = None, token_cache: Optional[TokenCache] = None):
        self.settings = settings or KayakoSettings()
        self.base_url = self.settings.url.rstrip("/")
        self.client_id = self.settings.client_id
        self.client_secret = self.settings.client_secret.get_secret_value()
        self.agent_email = self.settings.email
        self.agent_password = self.settings.password.get_secret_value()
        self.token_cache = token_cache or TokenCache()

    @property
    def name(self) -> str:
        return "Kayako"

    @property
    def uses_oauth(self) -> bool:
        return bool(self.client_id and self.client_secret)

    @property
    def uses_basic_auth(self) -> bool:
        return bool(self.agent_email and self.agent_password)

    @property
    def token_cache_key(self) -> str:
        return f"kayako:{self.base_url}:{self.client_id}"

    def is_configured(self) -> bool:
        return bool(self.base_url) and (self.uses_oauth or self.uses_basic_auth)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _send(self,
                    method: str,
                    path: str,
                    headers: Optional[Dict[str, str]] = None,
                    json_body: Optional[Dict[str, Any]] = None,
                    data: Any = None) -> HttpResponse:
        """
        Perform one HTTP request against the Kayako instance.

        Raises:
            TransportError: On connection failures or timeout
        """
        url = f"{self.base_url}{path}"
        timeout = aiohttp.ClientTimeout(total=self.settings.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(method, url, headers=headers, json=json_body, data=data) as response:
                    text = await response.text()
                    return HttpResponse(status=response.status, text=text)
        except asyncio.TimeoutError:
            logger.warning(f"Kayako request timed out after {self.settings.timeout}s: {method} {path}")
            raise TransportError(f"Kayako request timed out: {method} {path}")
        except aiohttp.ClientError as e:
            logger.warning(f"Kayako request failed: {method} {path}: {e}")
            raise TransportError(f"Kayako request failed: {method} {path}: {e}")

    async def _fetch_token(self) -> Tuple[str, float]:
        """
        Exchange client credentials for a bearer token.

        Returns:
            Tuple of (access_token, cache_ttl_seconds)

        Raises:
            AuthError: If the token endpoint rejects the request or returns no token
        """
        response = await self._send(
            "POST",
            self.TOKEN_PATH,
            data={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "scope": self.settings.scopes,
            },
        )

        if not response.ok:
            logger.error(f"Kayako OAuth token request failed: status={response.status} body={response.text}")
            raise AuthError(f"Failed to obtain Kayako OAuth access token: {response.text}")

        payload = response.json() or {}
        token = payload.get("access_token")
        if not token:
            raise AuthError("Kayako OAuth response did not contain an access token.")

        expires_in = payload.get("expires_in") or DEFAULT_TOKEN_LIFETIME
        ttl = max(float(expires_in) - TOKEN_EXPIRY_MARGIN, 0)
        logger.info(f"Obtained Kayako access token (cached for {ttl:.0f}s)")
        return token, ttl

    async def _auth_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.uses_oauth:
            token = await self.token_cache.get_or_refresh(self.token_cache_key, self._fetch_token)
            headers["Authorization"] = f"Bearer {token}"
        else:
            headers["Authorization"] = aiohttp.BasicAuth(self.agent_email, self.agent_password).encode()
        return headers

    async def _api(self,
                   method: str,
                   path: str,
                   json_body: Optional[Dict[str, Any]] = None,
                   data: Any = None) -> HttpResponse:
        """Authenticated API call; a 401 drops the cached token."""
        headers = await self._auth_headers()
        response = await self._send(method, path, headers=headers, json_body=json_body, data=data)
        if response.status == 401:
            if self.uses_oauth:
                self.token_cache.forget(self.token_cache_key)
            logger.error(f"Kayako rejected credentials for {method} {path}")
            raise AuthError(f"Kayako rejected credentials: {response.text}")
        return response

    @staticmethod
    def _data(response: HttpResponse) -> Any:
        payload = response.json()
        if isinstance(payload, dict):
            return payload.get("data")
        return None

    # ------------------------------------------------------------------
    # Provider interface
    # ------------------------------------------------------------------

    async def create_case(self, request: CaseRequest) -> CaseResult:
        if not self.is_configured():
            raise ConfigurationError("Kayako provider is not configured.")

        requester_id = await self._resolve_requester(request)
        payload = self._build_case_payload(request, requester_id)
        form = self._build_multipart(payload, request.resolved_attachments)

        if form is not None:
            response = await self._api("POST", self.CASES_PATH, data=form)
        else:
            response = await self._api("POST", self.CASES_PATH, json_body=payload)

        if not response.ok:
            logger.error(f"Kayako API error creating case: status={response.status} body={response.text}")
            raise ApiError("Failed to create Kayako case", status=response.status, body=response.text)

        data = self._data(response) or {}
        case_id = data.get("id") if isinstance(data, dict) else None
        return CaseResult(
            id=str(case_id) if case_id is not None else None,
            provider="kayako",
            raw=response.json(),
        )

    async def test_connection(self) -> bool:
        if not self.is_configured():
            return False

        try:
            response = await self._api("GET", self.ME_PATH)
            return response.ok
        except Exception as e:
            logger.warning(f"Kayako connection test failed: {e}")
            return False

    # ------------------------------------------------------------------
    # Requester resolution
    # ------------------------------------------------------------------

    async def _resolve_requester(self, request: CaseRequest) -> Any:
        """
        Create the requester, or find the existing one on a duplicate-email error.

        Creating first and searching only on conflict avoids the window where a
        requester appears between a search and a create.
        """
        email = request.email
        logger.info(f"Kayako creating requester for {email}")

        response = await self._api(
            "POST",
            self.USERS_PATH,
            json_body={
                "full_name": request.name or email,
                "email": email,
                "role_id": self.settings.customer_role_id,
            },
        )

        if response.ok:
            data = self._data(response)
            user_id = data.get("id") if isinstance(data, dict) else None
            if user_id is None:
                raise ApiError("Kayako user creation returned no id", status=response.status, body=response.text)
            logger.info(f"Kayako requester created: email={email} user_id={user_id}")
            return user_id

        if self._is_duplicate_email_error(response):
            logger.info(f"Kayako requester already exists, searching by email: {email}")
            return await self._search_requester(email)

        logger.error(f"Failed to find or create Kayako requester: email={email} body={response.text}")
        raise ApiError("Failed to find or create requester in Kayako", status=response.status, body=response.text)

    @staticmethod
    def _is_duplicate_email_error(response: HttpResponse) -> bool:
        if response.status != 400:
            return False

        payload = response.json()
        errors = payload.get("errors", []) if isinstance(payload, dict) else []
        for error in errors or []:
            if not isinstance(error, dict):
                continue
            if error.get("code") == "FIELD_DUPLICATE" and error.get("parameter") == "email":
                return True
        return False

    async def _search_requester(self, email: str) -> Any:
        response = await self._api(
            "POST",
            self.USER_FILTER_PATH,
            json_body={
                "predicates": {
                    "collection_operator": "OR",
                    "collections": [
                        {
                            "proposition_operator": "AND",
                            "propositions": [
                                {
                                    "field": "identityemails.address",
                                    "operator": "comparison_equalto",
                                    "value": email,
                                },
                            ],
                        },
                    ],
                },
            },
        )

        if response.ok:
            users = self._data(response) or []
            if isinstance(users, list) and users and isinstance(users[0], dict) and users[0].get("id"):
                user_id = users[0]["id"]
                logger.info(f"Kayako found existing requester via filter: email={email} user_id={user_id}")
                return user_id

        logger.error(
            f"Kayako requester exists but filter failed to find it: email={email} "
            f"status={response.status} body={response.text}"
        )
        raise ApiError("Failed to find or create requester in Kayako", status=response.status, body=response.text)

    # ------------------------------------------------------------------
    # Case assembly
    # ------------------------------------------------------------------

    def _build_case_payload(self, request: CaseRequest, requester_id: Any) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "subject": (request.subject or "").strip() or DEFAULT_SUBJECT,
            "contents": self._format_contents(request),
            "requester_id": requester_id,
            "channel": self.settings.channel,
            "channel_id": self.settings.channel_id,
            "channel_options": {"html": True},
        }

        priority_id = self._map_priority(request.priority)
        if priority_id is not None:
            payload["priority_id"] = priority_id

        return payload

    def _map_priority(self, priority: Optional[str]) -> Optional[int]:
        if not priority:
            return None
        priority_id = self.settings.priority_map.get(str(priority).strip().lower())
        if priority_id is None:
            logger.warning(f"Unknown priority '{priority}', sending case without priority")
        return priority_id

    @staticmethod
    def _format_contents(request: CaseRequest) -> str:
        contents = html.escape(request.message)
        contents += f"\n\n---\n{FORM_FOOTER}"
        if request.name:
            contents += f"\nName: {html.escape(request.name)}"
        contents += f"\nEmail: {html.escape(request.email)}"
        return nl2br(contents)

    @staticmethod
    def _build_multipart(payload: Dict[str, Any],
                         attachments: List[ResolvedAttachment]) -> Optional[aiohttp.FormData]:
        """
        Build a multipart body carrying the case fields and attachment files.

        Returns:
            FormData, or None when no attachment could be read
        """
        files = []
        for attachment in attachments:
            try:
                content = Path(attachment.path).read_bytes()
            except OSError as e:
                logger.warning(f"Skipping unreadable attachment {attachment.filename}: {e}")
                continue
            files.append((attachment, content))

        if not files:
            return None

        form = aiohttp.FormData()
        for key, value in payload.items():
            if key == "channel_options":
                form.add_field("channel_options[html]", "true")
            else:
                form.add_field(key, str(value))
        for attachment, content in files:
            form.add_field(
                "files[]",
                content,
                filename=attachment.filename,
                content_type=attachment.mime_type,
            )
        return form
