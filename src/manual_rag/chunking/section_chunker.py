"""Section-aware chunker: headers bound sections, paragraphs fill token-sized chunks."""

from __future__ import annotations

import re
from dataclasses import dataclass

from manual_rag.chunking.overlap import compute_overlap_text
from manual_rag.chunking.tokens import estimate_tokens
from manual_rag.config.constants import CHUNK_OVERLAP, CHUNK_SIZE, MAX_CAPS_HEADER_LENGTH
from manual_rag.models.domain import Chunk

_MD_HEADER = re.compile(r"^(#{1,6})\s+(.+)$")
_NUMBERED_HEADER = re.compile(r"^(\d+\.)+\s+(.+)$")
_CAPS_CHARS = re.compile(r"^[\w\s]+$")
_BLANK_LINES = re.compile(r"\n[^\S\n]*(?:\n[^\S\n]*)+")
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?。])\s+")
_WORD = re.compile(r"\S+")


@dataclass
class _Section:
    title: str | None
    start: int
    end: int


@dataclass
class _Unit:
    """A piece of own text with the document offset where it begins."""

    text: str
    start: int
    joiner: str  # separator placed before this unit when it follows another


class SectionChunker:
    def __init__(self, chunk_size: int = CHUNK_SIZE, chunk_overlap: int = CHUNK_OVERLAP) -> None:
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap

    def chunk(self, content: str, title: str = "") -> list[Chunk]:
        if not content or not content.strip():
            return []

        chunks: list[Chunk] = []
        for section in self._split_sections(content, title or None):
            units = self._section_units(content, section)
            self._fill_chunks(chunks, units, section)

        if not chunks:
            chunks.append(
                Chunk(
                    doc_id="",
                    chunk_index=0,
                    content=content.strip(),
                    section_title=title or None,
                    token_count=estimate_tokens(content),
                    start_offset=0,
                    end_offset=len(content),
                )
            )
        return chunks

    # --- sections ---

    @staticmethod
    def detect_section_headers(text: str) -> list[tuple[str, int]]:
        """Return (title, line_start_offset) for every header line."""
        headers: list[tuple[str, int]] = []
        position = 0
        for line in text.split("\n"):
            title = _header_title(line.strip())
            if title is not None:
                headers.append((title, position))
            position += len(line) + 1
        return headers

    def _split_sections(self, text: str, doc_title: str | None) -> list[_Section]:
        headers = self.detect_section_headers(text)
        if not headers:
            return [_Section(doc_title, 0, len(text))]

        sections: list[_Section] = []
        first_pos = headers[0][1]
        if first_pos > 0 and text[:first_pos].strip():
            sections.append(_Section(doc_title, 0, first_pos))
        for i, (header_title, pos) in enumerate(headers):
            start = 0 if i == 0 and not sections else pos
            end = headers[i + 1][1] if i + 1 < len(headers) else len(text)
            sections.append(_Section(header_title, start, end))
        return sections

    # --- units ---

    def _section_units(self, text: str, section: _Section) -> list[_Unit]:
        body = text[section.start : section.end]
        units: list[_Unit] = []
        pos = 0
        pieces: list[tuple[int, int]] = []
        for sep in _BLANK_LINES.finditer(body):
            pieces.append((pos, sep.start()))
            pos = sep.end()
        pieces.append((pos, len(body)))

        for start, end in pieces:
            raw = body[start:end]
            paragraph = raw.strip()
            if not paragraph:
                continue
            para_start = section.start + start + (len(raw) - len(raw.lstrip()))
            if estimate_tokens(paragraph) <= self._chunk_size:
                units.append(_Unit(paragraph, para_start, "\n\n"))
            else:
                split = self._split_oversized(paragraph, para_start)
                if split:
                    split[0].joiner = "\n\n"
                units.extend(split)
        return units

    def _split_oversized(self, paragraph: str, base: int) -> list[_Unit]:
        """Split a paragraph larger than chunk_size by sentences, then by words."""
        units: list[_Unit] = []
        pos = 0
        spans: list[tuple[int, int]] = []
        for boundary in _SENTENCE_BOUNDARY.finditer(paragraph):
            spans.append((pos, boundary.start()))
            pos = boundary.end()
        spans.append((pos, len(paragraph)))

        for start, end in spans:
            sentence = paragraph[start:end]
            if not sentence.strip():
                continue
            if estimate_tokens(sentence) <= self._chunk_size:
                units.append(_Unit(sentence.strip(), base + start, " "))
            else:
                units.extend(self._split_words(sentence, base + start))
        return units

    def _split_words(self, sentence: str, base: int) -> list[_Unit]:
        units: list[_Unit] = []
        words: list[str] = []
        group_start = 0
        for match in _WORD.finditer(sentence):
            candidate = " ".join(words + [match.group()])
            if words and estimate_tokens(candidate) > self._chunk_size:
                units.append(_Unit(" ".join(words), base + group_start, " "))
                words = []
            if not words:
                group_start = match.start()
            words.append(match.group())
        if words:
            units.append(_Unit(" ".join(words), base + group_start, " "))
        return units

    # --- accumulation ---

    def _fill_chunks(
        self, chunks: list[Chunk], units: list[_Unit], section: _Section
    ) -> None:
        own: list[_Unit] = []
        carry = ""
        chunk_start = section.start

        for unit in units:
            if own and estimate_tokens(_compose(carry, own + [unit])) > self._chunk_size:
                emitted = _compose(carry, own)
                chunks.append(
                    self._make_chunk(len(chunks), emitted, section.title, chunk_start, unit.start)
                )
                carry = compute_overlap_text(emitted, self._chunk_overlap)
                chunk_start = unit.start
                own = []
            if not own and carry and estimate_tokens(_compose(carry, [unit])) > self._chunk_size:
                carry = ""
            own.append(unit)

        if own:
            chunks.append(
                self._make_chunk(
                    len(chunks), _compose(carry, own), section.title, chunk_start, section.end
                )
            )

    @staticmethod
    def _make_chunk(
        index: int, content: str, section_title: str | None, start: int, end: int
    ) -> Chunk:
        return Chunk(
            doc_id="",
            chunk_index=index,
            content=content,
            section_title=section_title,
            token_count=estimate_tokens(content),
            start_offset=start,
            end_offset=end,
        )


def _compose(carry: str, units: list[_Unit]) -> str:
    parts: list[str] = []
    for i, unit in enumerate(units):
        if i:
            parts.append(unit.joiner)
        parts.append(unit.text)
    own = "".join(parts)
    return f"{carry}\n\n{own}" if carry else own


def _header_title(line: str) -> str | None:
    if not line:
        return None
    md = _MD_HEADER.match(line)
    if md:
        return md.group(2).strip()
    if _NUMBERED_HEADER.match(line):
        return line
    if (
        len(line) < MAX_CAPS_HEADER_LENGTH
        and _CAPS_CHARS.match(line)
        and line == line.upper()
        and any(ch.isupper() for ch in line)
    ):
        return line
    return None
