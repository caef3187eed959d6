"""PDF helpers built on pdfminer.six."""

import io

from pdfminer.pdfpage import PDFPage


def count_pdf_pages(content: bytes) -> int:
    """
    Count the pages of a PDF document.

    Raises:
        pdfminer.pdfparser.PDFSyntaxError: content is not a parseable PDF
        ValueError: the document has no pages
    """
    pages = sum(1 for _ in PDFPage.get_pages(io.BytesIO(content), check_extractable=False))
    if pages < 1:
        raise ValueError("PDF has no pages")
    return pages
