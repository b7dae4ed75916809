import pymupdf
import pytest

from labworker.pdf.base import BasePdfSplitter
from labworker.pdf.exceptions import PdfSplitError
from labworker.pdf.pymupdf_adapter import PyMuPdfAdapter
from labworker.pdf.pypdf_adapter import PyPdfAdapter

ADAPTERS = [PyMuPdfAdapter, PyPdfAdapter]


def _page_text(pdf_bytes: bytes) -> list[str]:
    with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:
        return [page.get_text().strip() for page in doc]


@pytest.mark.parametrize("adapter_cls", ADAPTERS)
class TestPdfSplitters:
    def test_counts_single_page(
        self, adapter_cls: type[BasePdfSplitter], sample_pdf_bytes: bytes
    ) -> None:
        assert adapter_cls().page_count(sample_pdf_bytes) == 1

    def test_counts_multiple_pages(
        self, adapter_cls: type[BasePdfSplitter], six_page_pdf_bytes: bytes
    ) -> None:
        assert adapter_cls().page_count(six_page_pdf_bytes) == 6

    def test_splits_into_numbered_single_page_documents(
        self, adapter_cls: type[BasePdfSplitter], six_page_pdf_bytes: bytes
    ) -> None:
        chunks = adapter_cls().split_pages(six_page_pdf_bytes)

        assert [chunk.page_number for chunk in chunks] == [1, 2, 3, 4, 5, 6]
        for chunk in chunks:
            assert chunk.byte_size == len(chunk.pdf_bytes) > 0
            assert _page_text(chunk.pdf_bytes) == [f"Lab results page {chunk.page_number}"]

    def test_blank_page_is_still_a_page(
        self, adapter_cls: type[BasePdfSplitter], empty_pdf_bytes: bytes
    ) -> None:
        chunks = adapter_cls().split_pages(empty_pdf_bytes)
        assert len(chunks) == 1
        assert chunks[0].page_number == 1

    def test_page_count_raises_on_invalid_bytes(
        self, adapter_cls: type[BasePdfSplitter]
    ) -> None:
        with pytest.raises(PdfSplitError):
            adapter_cls().page_count(b"not a pdf")

    def test_split_raises_on_invalid_bytes(self, adapter_cls: type[BasePdfSplitter]) -> None:
        with pytest.raises(PdfSplitError):
            adapter_cls().split_pages(b"not a pdf")
