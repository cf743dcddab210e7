"""
PDF text extraction.

Turns an invoice PDF into plain text using pdfplumber. Failures are logged
and reported as an empty string; nothing is raised past this module.
"""

from pathlib import Path

import pdfplumber

from .config import logger


def extract_text_from_pdf(pdf_path: Path) -> str:
    """
    Extract all text content from a PDF file.

    Args:
        pdf_path: Path to the PDF file

    Returns:
        Concatenated text from all pages, or "" if the file is missing,
        empty or cannot be decoded
    """
    pdf_path = Path(pdf_path)

    if not pdf_path.is_file():
        logger.error(f"PDF file not found: {pdf_path}")
        return ""

    if pdf_path.stat().st_size == 0:
        logger.error(f"Empty PDF file: {pdf_path}")
        return ""

    text_parts = []

    try:
        with pdfplumber.open(pdf_path) as pdf:
            for page in pdf.pages:
                page_text = page.extract_text()
                if page_text:
                    text_parts.append(page_text)
    except Exception as e:
        logger.error(f"Error extracting text from {pdf_path}: {e}")
        return ""

    text = "\n".join(text_parts)
    if not text.strip():
        logger.error(f"Could not extract text from PDF: {pdf_path}")
        return ""

    logger.info(f"Extracted {len(text)} characters from {pdf_path.name}")
    return text
