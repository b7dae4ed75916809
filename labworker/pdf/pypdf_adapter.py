import io

from pypdf import PdfReader, PdfWriter

from labworker.pdf.base import BasePdfSplitter, PageChunk
from labworker.pdf.exceptions import PdfSplitError


class PyPdfAdapter(BasePdfSplitter):
    """Counts and splits PDF pages using pypdf."""

    def page_count(self, pdf_bytes: bytes) -> int:
        try:
            return len(PdfReader(io.BytesIO(pdf_bytes)).pages)
        except Exception as exc:
            raise PdfSplitError(f"pypdf page count failed: {exc}") from exc

    def split_pages(self, pdf_bytes: bytes) -> list[PageChunk]:
        try:
            reader = PdfReader(io.BytesIO(pdf_bytes))
            chunks: list[PageChunk] = []
            for index, page in enumerate(reader.pages):
                writer = PdfWriter()
                writer.add_page(page)
                buffer = io.BytesIO()
                writer.write(buffer)
                chunks.append(PageChunk(page_number=index + 1, pdf_bytes=buffer.getvalue()))
            return chunks
        except Exception as exc:
            raise PdfSplitError(f"pypdf split failed: {exc}") from exc
