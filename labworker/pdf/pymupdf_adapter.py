import pymupdf

from labworker.pdf.base import BasePdfSplitter, PageChunk
from labworker.pdf.exceptions import PdfSplitError


class PyMuPdfAdapter(BasePdfSplitter):
    """Counts and splits PDF pages using PyMuPDF."""

    def page_count(self, pdf_bytes: bytes) -> int:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                return int(doc.page_count)
        except Exception as exc:
            raise PdfSplitError(f"pymupdf page count failed: {exc}") from exc

    def split_pages(self, pdf_bytes: bytes) -> list[PageChunk]:
        try:
            chunks: list[PageChunk] = []
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                for index in range(doc.page_count):
                    with pymupdf.open() as single:  # type: ignore[no-untyped-call]
                        single.insert_pdf(doc, from_page=index, to_page=index)
                        chunks.append(
                            PageChunk(page_number=index + 1, pdf_bytes=single.tobytes())
                        )
            return chunks
        except Exception as exc:
            raise PdfSplitError(f"pymupdf split failed: {exc}") from exc
