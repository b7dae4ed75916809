from labworker.config.settings import Settings
from labworker.pdf.base import BasePdfSplitter
from labworker.pdf.pymupdf_adapter import PyMuPdfAdapter
from labworker.pdf.pypdf_adapter import PyPdfAdapter


class PdfSplitterFactory:
    """Creates the correct PDF splitter based on settings."""

    ADAPTERS: dict[str, type[BasePdfSplitter]] = {
        "pymupdf": PyMuPdfAdapter,
        "pypdf": PyPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings) -> BasePdfSplitter:
        engine = settings.pdf_engine.lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls()
