"""
Attachment reference resolution.

Attachments arrive as opaque references owned by the host's asset store.
They are resolved to local files before a case request is built; a
reference that cannot be resolved is skipped with a warning.
"""

import logging
import mimetypes
from pathlib import Path
from typing import Any, Iterable, List, Optional, Protocol

from support_relay.models import ResolvedAttachment

logger = logging.getLogger(__name__)


class AttachmentResolver(Protocol):
    """Host-provided lookup from an attachment reference to a local file."""

    async def resolve(self, reference: Any) -> Optional[ResolvedAttachment]:
        ...


class DirectoryAttachmentResolver:
    """
    Resolves references as file names relative to a base directory.

    Suitable for hosts that store uploads on local disk.
    """

    def __init__(self, base_dir: str):
        self.base_dir = Path(base_dir).resolve()

    async def resolve(self, reference: Any) -> Optional[ResolvedAttachment]:
        candidate = (self.base_dir / str(reference)).resolve()
        if self.base_dir not in candidate.parents or not candidate.is_file():
            return None
        mime_type, _ = mimetypes.guess_type(candidate.name)
        return ResolvedAttachment(
            path=str(candidate),
            filename=candidate.name,
            mime_type=mime_type or "application/octet-stream",
            source_id=str(reference),
        )


async def resolve_attachments(resolver: Optional[AttachmentResolver],
                              references: Iterable[Any]) -> List[ResolvedAttachment]:
    """
    Resolve references in order, dropping the ones that fail.

    Args:
        resolver: Asset store lookup, or None when attachments are unsupported
        references: Opaque attachment references from the submission

    Returns:
        Resolved attachments in submission order
    """
    references = [ref for ref in references or [] if ref]
    if not references:
        return []
    if resolver is None:
        logger.warning(f"Submission has {len(references)} attachment(s) but no resolver is configured")
        return []

    resolved = []
    for reference in references:
        try:
            attachment = await resolver.resolve(reference)
        except Exception as e:
            logger.warning(f"Failed to resolve attachment {reference}: {e}")
            continue
        if attachment is None:
            logger.warning(f"Attachment {reference} could not be resolved, skipping")
            continue
        resolved.append(attachment)
    return resolved
