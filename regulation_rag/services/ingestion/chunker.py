"""Heading-aware text chunking for regulation documents.

Two strategies, picked per document:

1. **Section-based** -- used when the text contains at least one heading
   marker.  The text is cut at heading lines; each section becomes one
   chunk unless it is longer than ``max_size``, in which case it is cut
   again with the size-based strategy.  Recognised headings:

   * markdown ``#``, ``##``, ``###`` (levels 1-3)
   * chapter markers ``[제3장] 대여 사업`` (level 1)
   * roman-numeral headings ``IV. 예산 집행`` (level 2)

   A chunk's ``section`` is the path of enclosing headings joined with
   ``" > "``; its ``title`` is the innermost heading with markers removed.

2. **Size-based** -- whitespace tokens are accumulated greedily.  A chunk
   is closed when the next token would push it past ``max_size`` and it
   already holds ``min_size`` characters.  Only the last chunk may be
   shorter than ``min_size``.  A token too long to fit is cut at the
   character level so no chunk exceeds ``max_size``.

Short sections are kept rather than merged or dropped: in regulation text
a two-line article ("대여 기간은 최대 12개월로 한다.") is often the exact
answer to a question.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

import structlog

from regulation_rag.models.regulation import ChunkDraft

logger = structlog.get_logger(logger_name=__name__)

_MARKDOWN_HEADING = re.compile(r"^(#{1,3})\s+(\S.*)$")
_CHAPTER_HEADING = re.compile(r"^\[(제\d+장)\]\s*(.*)$")
_ROMAN_HEADING = re.compile(r"^([IVX]+)\.\s+(\S.*)$")

_PATH_SEPARATOR = " > "


def parse_heading(line: str) -> tuple[int, str, str] | None:
    """Return ``(level, label, title)`` for a heading line, else ``None``.

    ``label`` is what goes into the section path; ``title`` drops chapter
    and numbering markers.

    >>> parse_heading("## 대여 기간")
    (2, '대여 기간', '대여 기간')
    >>> parse_heading("[제3장] 대여 사업")
    (1, '제3장 대여 사업', '대여 사업')
    """
    stripped = line.strip()
    match = _MARKDOWN_HEADING.match(stripped)
    if match:
        text = match.group(2).strip()
        chapter = _CHAPTER_HEADING.match(text)
        if chapter:
            title = chapter.group(2).strip() or chapter.group(1)
            return len(match.group(1)), f"{chapter.group(1)} {chapter.group(2)}".strip(), title
        return len(match.group(1)), text, text
    match = _CHAPTER_HEADING.match(stripped)
    if match:
        title = match.group(2).strip() or match.group(1)
        return 1, f"{match.group(1)} {match.group(2)}".strip(), title
    match = _ROMAN_HEADING.match(stripped)
    if match:
        return 2, stripped, match.group(2).strip()
    return None


def split_by_size(text: str, min_size: int, max_size: int) -> Iterator[str]:
    """Yield whitespace-joined chunks of *text* within ``[min_size, max_size]``.

    The final chunk may be shorter than *min_size*.
    """
    current: list[str] = []
    length = 0
    for token in text.split():
        while token:
            sep = 1 if current else 0
            if length + sep + len(token) <= max_size:
                current.append(token)
                length += sep + len(token)
                token = ""
            elif length >= min_size:
                yield " ".join(current)
                current, length = [], 0
            else:
                # Not enough text to close the chunk and the token does not
                # fit: take as much of the token as the chunk can hold.
                room = max_size - length - sep
                if room <= 0:
                    yield " ".join(current)
                    current, length = [], 0
                    continue
                current.append(token[:room])
                token = token[room:]
                yield " ".join(current)
                current, length = [], 0
    if current:
        yield " ".join(current)


class ChunkSequence:
    """Lazy, restartable sequence of :class:`ChunkDraft` for one document.

    Nothing is computed until iteration; each ``iter()`` starts over from
    the beginning of the text.
    """

    def __init__(self, text: str, title: str, min_size: int, max_size: int) -> None:
        self._text = text.replace("\r\n", "\n").replace("\r", "\n")
        self._title = title
        self._min_size = min_size
        self._max_size = max_size

    def __iter__(self) -> Iterator[ChunkDraft]:
        if not self._text.strip():
            return iter(())
        if any(parse_heading(line) for line in self._text.split("\n")):
            return self._by_sections()
        return self._by_size(self._text, self._title, None)

    def _by_size(self, text: str, title: str, section: str | None) -> Iterator[ChunkDraft]:
        for piece in split_by_size(text, self._min_size, self._max_size):
            yield ChunkDraft(title=title, content=piece, section=section)

    def _by_sections(self) -> Iterator[ChunkDraft]:
        path: list[tuple[int, str]] = []
        title = self._title
        lines: list[str] = []
        has_body = False

        def flush() -> Iterator[ChunkDraft]:
            if not has_body:
                return
            content = "\n".join(lines).strip()
            section = _PATH_SEPARATOR.join(label for _, label in path) or None
            if len(content) <= self._max_size:
                yield ChunkDraft(title=title, content=content, section=section)
            else:
                yield from self._by_size(content, title, section)

        for line in self._text.split("\n"):
            heading = parse_heading(line)
            if heading is None:
                lines.append(line)
                has_body = has_body or bool(line.strip())
                continue

            yield from flush()
            level, label, heading_title = heading
            while path and path[-1][0] >= level:
                path.pop()
            path.append((level, label))
            title = heading_title
            lines = [line.strip()]
            has_body = False

        yield from flush()


class RegulationChunker:
    """Splits extracted regulation text into :class:`ChunkDraft` sequences.

    Parameters
    ----------
    min_size:
        Minimum characters per size-based chunk (default 200).
    max_size:
        Maximum characters per chunk (default 1000).
    """

    def __init__(self, min_size: int = 200, max_size: int = 1000) -> None:
        if min_size < 1 or max_size < min_size:
            msg = f"Invalid chunk bounds: min_size={min_size}, max_size={max_size}"
            raise ValueError(msg)
        self._min_size = min_size
        self._max_size = max_size

    @property
    def min_size(self) -> int:
        return self._min_size

    @property
    def max_size(self) -> int:
        return self._max_size

    def chunk(self, text: str, title: str) -> ChunkSequence:
        """Return the lazy chunk sequence for one document."""
        return ChunkSequence(text, title, self._min_size, self._max_size)
