"""
Document Parsing Service
Extracts plain text, pages and structural sections from uploaded contracts.
"""

import html
import io
import logging
import re
from pathlib import PurePath
from typing import List, Optional, Tuple

import fitz  # PyMuPDF
from docx import Document as DocxDocument

from ..exceptions import DocumentParsingError
from ..models.config import Settings, settings as default_settings
from ..models.schemas import ContractDocument, DocumentPage, Section, SectionKind

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TEXT_MIME = "text/plain"

MIME_TYPES = {
    PDF_MIME: "pdf",
    DOCX_MIME: "docx",
    TEXT_MIME: "txt",
}

# Word files carry no page breaks in their text; pages are synthesized
WORDS_PER_PAGE = 500

# Section heading patterns, checked in order
_PARAGRAPH_SIGN_RE = re.compile(r"^§+\s*\d+[a-z]?\b")
_ARTICLE_RE = re.compile(r"^Art(?:ikel|\.)\s*\d+\b", re.IGNORECASE)
_NUMBERED_RE = re.compile(r"^(\d+(?:\.\d+)*)\.?\s+\S")
_LIST_ITEM_RE = re.compile(r"^(?:[-•*–·]\s+|\(\d+[a-z]?\)\s*|[a-z]\)\s+)")
_LINE_RE = re.compile(r"[^\n]+")
_WORD_RE = re.compile(r"\S+")

MAX_TITLE_LENGTH = 80


def detect_file_type(filename: str, content_type: Optional[str] = None) -> str:
    """Return 'pdf', 'docx' or 'txt' by MIME type first, then by extension."""
    if content_type:
        file_type = MIME_TYPES.get(content_type.split(";")[0].strip().lower())
        if file_type:
            return file_type

    extension = PurePath(filename or "").suffix.lower().lstrip(".")
    if extension in MIME_TYPES.values():
        return extension

    raise DocumentParsingError(
        f"Unsupported file type: {content_type or extension or 'unknown'}. "
        "Please upload a PDF or Word (.docx) file"
    )


def validate_upload(filename: str, size: int, config: Optional[Settings] = None) -> Optional[str]:
    """
    Check an upload before parsing.

    Returns:
        An error message for the user, or None when the file is acceptable.
    """
    config = config or default_settings
    extension = PurePath(filename or "").suffix.lower().lstrip(".")
    if extension not in config.ALLOWED_EXTENSIONS:
        return "Please upload a PDF or Word (.docx) file"
    if size > config.max_file_size_bytes:
        return f"File size must be less than {config.MAX_FILE_SIZE_MB}MB"
    return None


def classify_line(line: str) -> Tuple[SectionKind, Optional[int]]:
    """Decide the structural role of one stripped, non-empty line."""
    if _PARAGRAPH_SIGN_RE.match(line) or _ARTICLE_RE.match(line):
        return SectionKind.HEADING, 1

    if _LIST_ITEM_RE.match(line):
        return SectionKind.LIST_ITEM, None

    numbered = _NUMBERED_RE.match(line)
    if numbered and len(line) <= MAX_TITLE_LENGTH:
        return SectionKind.HEADING, numbered.group(1).count(".") + 1

    letters = [c for c in line if c.isalpha()]
    if letters and len(line) <= MAX_TITLE_LENGTH and all(c.isupper() for c in letters):
        return SectionKind.HEADING, 1

    return SectionKind.PARAGRAPH, None


def detect_sections(content: str) -> List[Section]:
    """
    Split text into line-level sections with absolute offsets.

    Leading and trailing whitespace of a line is excluded from its section,
    so ``content[section.start:section.end] == section.text`` always holds.
    """
    sections: List[Section] = []
    for match in _LINE_RE.finditer(content):
        raw = match.group(0)
        text = raw.strip()
        if not text:
            continue
        start = match.start() + (len(raw) - len(raw.lstrip()))
        kind, level = classify_line(text)
        sections.append(Section(kind=kind, start=start, end=start + len(text), text=text, level=level))
    return sections


def paginate_words(content: str, words_per_page: int = WORDS_PER_PAGE) -> List[DocumentPage]:
    """Synthesize pages of ``words_per_page`` words, keeping original offsets."""
    words = list(_WORD_RE.finditer(content))
    pages = []
    for number, first in enumerate(range(0, len(words), words_per_page), start=1):
        chunk = words[first:first + words_per_page]
        start, end = chunk[0].start(), chunk[-1].end()
        pages.append(DocumentPage(page_number=number, content=content[start:end], start_offset=start, end_offset=end))

    if not pages:
        pages.append(DocumentPage(page_number=1, content=content, start_offset=0, end_offset=len(content)))
    return pages


class DocumentParser:
    """
    Parses contract uploads into ContractDocument objects.

    Supported formats:
    - PDF via PyMuPDF, one page per PDF page
    - DOCX via python-docx, pages synthesized every 500 words
    - plain text, paginated like DOCX
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    def parse(self, content: bytes, filename: str, content_type: Optional[str] = None) -> ContractDocument:
        """
        Parse raw upload bytes.

        Raises:
            DocumentParsingError: unsupported type, oversized or unreadable file
        """
        if len(content) > self.config.max_file_size_bytes:
            raise DocumentParsingError(
                f"File size must be less than {self.config.MAX_FILE_SIZE_MB}MB", status_code=413
            )
        if not content:
            raise DocumentParsingError("Uploaded file is empty")

        file_type = detect_file_type(filename, content_type)
        logger.info(f"Parsing {file_type} document: {filename} ({len(content)} bytes)")

        formatted_content = None
        if file_type == "pdf":
            text, pages = self._parse_pdf(content)
        elif file_type == "docx":
            text, formatted_content = self._parse_docx(content)
            pages = paginate_words(text)
        else:
            text = self._decode_text(content)
            pages = paginate_words(text)

        if not text.strip():
            raise DocumentParsingError(
                "No text could be extracted. Please ensure it is a readable PDF or Word document."
            )

        sections = detect_sections(text)
        logger.info(f"Parsed {filename}: {len(text)} chars, {len(pages)} pages, {len(sections)} sections")

        return ContractDocument(
            name=filename,
            content=text,
            formatted_content=formatted_content,
            pages=pages,
            sections=sections,
        )

    def _parse_pdf(self, content: bytes) -> Tuple[str, List[DocumentPage]]:
        try:
            doc = fitz.open(stream=content, filetype="pdf")
        except (RuntimeError, ValueError) as e:
            logger.error(f"PDF parsing error: {e}")
            raise DocumentParsingError("Failed to parse PDF file") from e

        try:
            page_texts = [page.get_text("text").strip() for page in doc]
        finally:
            doc.close()

        pages: List[DocumentPage] = []
        parts: List[str] = []
        offset = 0
        for number, page_text in enumerate(page_texts, start=1):
            if parts:
                offset += 2  # "\n\n" page separator
            pages.append(DocumentPage(
                page_number=number,
                content=page_text,
                start_offset=offset,
                end_offset=offset + len(page_text),
            ))
            parts.append(page_text)
            offset += len(page_text)

        return "\n\n".join(parts), pages

    def _parse_docx(self, content: bytes) -> Tuple[str, str]:
        try:
            doc = DocxDocument(io.BytesIO(content))
        except Exception as e:
            # corrupt containers surface as zipfile, lxml or PackageNotFoundError
            logger.error(f"Word parsing error: {e}")
            raise DocumentParsingError("Failed to parse Word document") from e

        paragraphs = [p.text for p in doc.paragraphs]
        text = "\n".join(p for p in paragraphs if p.strip())
        formatted = "".join(f"<p>{html.escape(p)}</p>" for p in paragraphs if p.strip())
        return text, formatted

    @staticmethod
    def _decode_text(content: bytes) -> str:
        for encoding in ("utf-8-sig", "cp1252"):
            try:
                return content.decode(encoding)
            except UnicodeDecodeError:
                continue
        raise DocumentParsingError("Text file encoding not supported")


def parse_document(content: bytes, filename: str, content_type: Optional[str] = None) -> ContractDocument:
    """Parse an upload with default settings."""
    return DocumentParser().parse(content, filename, content_type)
