"""
Support Form Submission Pipeline

Receives form-submission events, maps them onto the canonical schema,
screens them for spam, keeps a local record and hands accepted submissions
to an asynchronous delivery task.

Each step is a hard gate:
1. Form handle filter
2. Field mapping
3. Spam classification (rejections are flagged, never deleted)
4. Provider configuration check
5. Delivery enqueue

Design Considerations:
- The submitting user never sees a spam or delivery outcome as an error
- The pipeline never waits for delivery
- The local record is the system of record when the helpdesk is down
"""

import logging
from typing import Any, Dict, List, Optional

from support_relay.attachments import AttachmentResolver, DirectoryAttachmentResolver, resolve_attachments
from support_relay.auth.token_cache import TokenCache
from support_relay.classification.spam import SpamClassifier
from support_relay.config.settings import SupportSettings
from support_relay.delivery.retry import RetryPolicy
from support_relay.delivery.runner import AsyncioTaskRunner, TaskRunner
from support_relay.delivery.task import DeliveryTask, RecordFailureHandler, TerminalFailureHandler
from support_relay.models import CaseRequest, FormSubmission, PipelineResult, PipelineStatus
from support_relay.providers.base import SupportProvider
from support_relay.providers.factory import ProviderFactory
from support_relay.storage.models import DeliveryStatus
from support_relay.storage.repository import SubmissionRepository, SubmissionStore

logger = logging.getLogger(__name__)


class SupportFormPipeline:
    """
    Coordinates classification, local persistence and delivery for one form.

    Args:
        settings: Support relay settings
        classifier: Spam classifier
        provider: Helpdesk provider
        runner: Task runner receiving delivery tasks
        store: Local submission store (optional)
        attachment_resolver: Asset store lookup for attachment references (optional)
        failure_handlers: Extra terminal failure handlers for delivery tasks
    """

    def __init__(self,
                 settings: SupportSettings,
                 classifier: SpamClassifier,
                 provider: SupportProvider,
                 runner: TaskRunner,
                 store: Optional[SubmissionStore] = None,
                 attachment_resolver: Optional[AttachmentResolver] = None,
                 failure_handlers: Optional[List[TerminalFailureHandler]] = None):
        self.settings = settings
        self.classifier = classifier
        self.provider = provider
        self.runner = runner
        self.store = store
        self.attachment_resolver = attachment_resolver
        self.policy = RetryPolicy.from_settings(settings.delivery)
        self.failure_handlers = list(failure_handlers or [])

        if store is not None and settings.delivery.record_failures:
            self.failure_handlers.append(RecordFailureHandler(store))

        logger.info(
            f"Support pipeline initialized: form={settings.form_handle} provider={provider.name} "
            f"configured={provider.is_configured()}"
        )

    @classmethod
    def from_settings(cls,
                      settings: SupportSettings,
                      runner: Optional[TaskRunner] = None,
                      store: Optional[SubmissionStore] = None,
                      token_cache: Optional[TokenCache] = None,
                      attachment_resolver: Optional[AttachmentResolver] = None) -> "SupportFormPipeline":
        """Build a pipeline with the provider and classifier the settings select."""
        provider = ProviderFactory(token_cache=token_cache).create(settings)
        if store is None:
            store = SubmissionRepository.from_url(settings.database_url)
        if attachment_resolver is None and settings.attachments_dir:
            attachment_resolver = DirectoryAttachmentResolver(settings.attachments_dir)
        return cls(
            settings=settings,
            classifier=SpamClassifier(settings.spam),
            provider=provider,
            runner=runner or AsyncioTaskRunner(),
            store=store,
            attachment_resolver=attachment_resolver,
        )

    def map_fields(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Project raw form fields onto canonical names.

        Canonical fields whose form field is missing or null are left out.
        """
        mapped = {}
        for canonical, form_field in self.settings.field_mapping.items():
            value = fields.get(form_field)
            if value is not None:
                mapped[canonical] = value
        return mapped

    async def handle(self, event: FormSubmission) -> PipelineResult:
        """
        Process one form-submission event.

        Args:
            event: Inbound form submission

        Returns:
            PipelineResult describing where the submission ended up
        """
        if event.form_handle != self.settings.form_handle:
            logger.debug(f"Ignoring submission for form {event.form_handle}")
            return PipelineResult(status=PipelineStatus.IGNORED)

        data = self.map_fields(event.fields)
        record_id = await self._record(event.form_handle, data)

        verdict = self.classifier.classify(data, client_ip=event.client_ip, user_agent=event.user_agent)
        if verdict.is_spam:
            logger.info(
                f"Support: spam detected: reason={verdict.reason.value} "
                f"email={data.get('email') or 'unknown'}"
            )
            if record_id and self.store is not None:
                try:
                    await self.store.mark_spam(record_id, verdict.reason.value)
                except Exception as e:
                    logger.error(f"Failed to flag submission {record_id} as spam: {e}")
            return PipelineResult(status=PipelineStatus.SPAM, record_id=record_id, verdict=verdict)

        if not self.provider.is_configured():
            logger.warning("Support: provider not configured, submission saved locally only")
            await self._mark(record_id, DeliveryStatus.NOT_SENT)
            return PipelineResult(status=PipelineStatus.STORED_LOCALLY, record_id=record_id, verdict=verdict)

        try:
            request = await self._build_request(data, record_id)
        except ValueError as e:
            logger.warning(f"Support: submission kept locally, cannot build case: {e}")
            await self._mark(record_id, DeliveryStatus.NOT_SENT, error=str(e))
            return PipelineResult(status=PipelineStatus.INCOMPLETE, record_id=record_id, verdict=verdict)

        task = DeliveryTask(
            request,
            self.provider,
            policy=self.policy,
            store=self.store,
            failure_handlers=self.failure_handlers,
        )

        await self._mark(record_id, DeliveryStatus.QUEUED)
        try:
            self.runner.submit(task)
        except Exception as e:
            logger.error(f"Support: failed to queue submission for {request.email}: {e}", exc_info=True)
            await self._mark(record_id, DeliveryStatus.NOT_SENT, error=str(e))
            return PipelineResult(status=PipelineStatus.ENQUEUE_FAILED, record_id=record_id, verdict=verdict)

        logger.info(f"Support: submission queued for processing: email={request.email} queue={self.settings.queue}")
        return PipelineResult(status=PipelineStatus.QUEUED, record_id=record_id, verdict=verdict)

    async def _build_request(self, data: Dict[str, Any], record_id: Optional[str]) -> CaseRequest:
        references = data.get("attachments") or []
        if not isinstance(references, (list, tuple)):
            references = [references]
        attachments = await resolve_attachments(self.attachment_resolver, references)

        return CaseRequest(
            email=str(data.get("email") or "").strip(),
            message=str(data.get("message") or ""),
            name=_optional_str(data.get("name")),
            subject=_optional_str(data.get("subject")),
            priority=_optional_str(data.get("priority")),
            resolved_attachments=attachments,
            record_id=record_id,
        )

    async def _record(self, form_handle: str, data: Dict[str, Any]) -> Optional[str]:
        if self.store is None:
            return None
        try:
            return await self.store.record_submission(form_handle, data)
        except Exception as e:
            logger.error(f"Failed to store submission locally: {e}", exc_info=True)
            return None

    async def _mark(self, record_id: Optional[str], status: str, error: Optional[str] = None) -> None:
        if not record_id or self.store is None:
            return
        try:
            await self.store.mark_delivery(record_id, status, error=error)
        except Exception as e:
            logger.error(f"Failed to update submission record {record_id}: {e}")


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
