"""
Text preparation for the document index: PDF extraction, whitespace
cleanup and overlapping chunking.
"""

import io
import re
from typing import List

from pypdf import PdfReader

CHUNK_SIZE = 1000  # characters per chunk
CHUNK_OVERLAP = 200
MIN_CHUNK_LENGTH = 20
FALLBACK_CHUNK_LENGTH = 5000

_WHITESPACE = re.compile(r"\s+")


def extract_pdf_text(data: bytes) -> str:
    reader = PdfReader(io.BytesIO(data))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def clean_text(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def chunk_text(text: str, chunk_size: int = CHUNK_SIZE, overlap: int = CHUNK_OVERLAP) -> List[str]:
    """
    Split text into overlapping chunks, preferring to end on a sentence.

    A chunk is cut at the last "." inside the window when that period lies
    past the window's midpoint. Chunks of MIN_CHUNK_LENGTH characters or
    fewer are dropped. If nothing survives, the first FALLBACK_CHUNK_LENGTH
    characters are returned as a single chunk.
    """
    if overlap >= chunk_size:
        raise ValueError("overlap must be smaller than chunk_size")

    chunks = []
    start = 0
    while start < len(text):
        end = start + chunk_size
        if end < len(text):
            last_period = text.rfind(".", start, end)
            if last_period > start + chunk_size // 2:
                end = last_period + 1

        chunks.append(text[start:end].strip())
        if end >= len(text):
            break
        start = end - overlap

    chunks = [chunk for chunk in chunks if len(chunk) > MIN_CHUNK_LENGTH]
    if not chunks and text.strip():
        chunks = [text[:FALLBACK_CHUNK_LENGTH].strip()]
    return chunks
