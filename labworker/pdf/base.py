from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PageChunk:
    """A single page of a source PDF, re-encoded as a standalone document."""

    page_number: int
    pdf_bytes: bytes

    @property
    def byte_size(self) -> int:
        return len(self.pdf_bytes)


class BasePdfSplitter(ABC):
    """Contract for all PDF page counting and splitting adapters."""

    @abstractmethod
    def page_count(self, pdf_bytes: bytes) -> int:
        """Count the pages in a PDF.

        Raises:
            PdfSplitError: if the bytes are not a readable PDF.
        """

    @abstractmethod
    def split_pages(self, pdf_bytes: bytes) -> list[PageChunk]:
        """Split a PDF into one single-page PDF per page, numbered from 1.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            Page chunks in document order.

        Raises:
            PdfSplitError: if splitting fails for any reason.
        """
