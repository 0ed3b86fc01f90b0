"""
Document rendering interface.

After a confirm commits, the orchestrator hands the posted document to a
DocumentRenderer.  Rendering is a side effect outside the ledger
transaction: a failure becomes a warning on the confirm result and never
undoes the posting.  File formats are not the kernel's concern.
"""

from typing import Protocol

from lekka_kernel.domain.dtos import PostedDocument


class DocumentRenderer(Protocol):
    def render(self, document: PostedDocument) -> str | None:
        """Produce the document file; return its path or None."""
        ...


class NullRenderer:
    """Renders nothing."""

    def render(self, document: PostedDocument) -> str | None:
        return None
