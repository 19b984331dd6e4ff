"""Footnote parsing for markdown pages.

Inline references look like ``[^N]`` and definitions like ``[^N]: ...`` at
the start of a line. Every lookup of a specific footnote number goes through
:func:`ref_pattern`, whose negative lookahead keeps ``[^1]`` from matching
inside ``[^10]``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional

from citeguard.models import ExtractedCitation, FootnoteDefinition, FootnoteFormat

FRONTMATTER_RE = re.compile(r"^(---\n[\s\S]*?\n---\n?)")
DEFINITION_RE = re.compile(r"^\[\^(\d+)\]:\s*(.*)$")
INLINE_REF_RE = re.compile(r"\[\^(\d+)\](?!:)")
ANY_MARKER_RE = re.compile(r"\[\^[^\]\s]+\]")
HEADING_RE = re.compile(r"^#{2,3}\s")
FENCE_RE = re.compile(r"^(`{3,}|~{3,})")
LIST_ITEM_RE = re.compile(r"^(\s*)(?:[-*+]|\d+[.)])\s+")

_MARKDOWN_LINK_RE = re.compile(r"\[([^\]]*)\]\((https?://[^)\s]+)\)")
_TEXT_THEN_URL_RE = re.compile(r"^(.+?)\s+(https?://\S+)\s*$")
_BARE_URL_RE = re.compile(r"^(https?://\S+)\s*$")

CONTEXT_WINDOW = 10
CLAIM_CONTEXT_CHARS = 300


def ref_pattern(number: int | str) -> re.Pattern[str]:
    """Pattern for an inline reference to one footnote number."""
    return re.compile(rf"\[\^{re.escape(str(number))}\](?!\d)")


def split_frontmatter(content: str) -> tuple[str, str]:
    """Return ``(frontmatter, body)``; frontmatter is ``""`` when absent."""
    match = FRONTMATTER_RE.match(content)
    if not match:
        return "", content
    return match.group(1), content[match.end():]


def strip_frontmatter(content: str) -> str:
    return split_frontmatter(content)[1]


def is_definition_line(line: str) -> bool:
    return DEFINITION_RE.match(line.strip()) is not None


# ---------------------------------------------------------------------------
# Definition classification
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClassifiedFootnote:
    format: FootnoteFormat
    url: Optional[str]
    link_text: str


def extract_best_title(text: str) -> str:
    """Pick a readable title out of the descriptive text preceding a URL.

    A quoted substring wins and keeps the surrounding text as context:
    ``Anthropic, "Core Views on AI Safety," March 2023`` becomes
    ``Core Views on AI Safety (Anthropic, March 2023)``. Otherwise the text is
    returned with trailing punctuation stripped.
    """
    quoted = re.search(r'"([^"]+)"', text) or re.search("“([^”]+)”", text)
    if not quoted:
        return re.sub(r"[,.:;\s]+$", "", text).strip()

    title = re.sub(r"[.,]+$", "", quoted.group(1)).strip()
    before = re.sub(r"[,\s]+$", "", text[: quoted.start()]).strip()
    after = text[quoted.end():]
    after = re.sub(r"[,.\s]+$", "", re.sub(r"^[,.\s]+", "", after)).strip()
    context = ", ".join(
        re.sub(r"[.,]+$", "", part).strip() for part in (before, after) if part and len(part) > 3
    )
    return f"{title} ({context})" if context else title


def _markdown_link(match: re.Match[str]) -> ClassifiedFootnote:
    title = match.group(1).strip()
    return ClassifiedFootnote(FootnoteFormat.MARKDOWN_LINK, match.group(2), title)


def _text_then_url(match: re.Match[str]) -> ClassifiedFootnote:
    text = re.sub(r"[,:.]+\s*$", "", match.group(1)).strip()
    url = match.group(2).rstrip(".,;")
    return ClassifiedFootnote(FootnoteFormat.TEXT_THEN_URL, url, extract_best_title(text))


def _bare_url(match: re.Match[str]) -> ClassifiedFootnote:
    return ClassifiedFootnote(FootnoteFormat.BARE_URL, match.group(1).rstrip(".,;"), "")


# Evaluated in order; the first pattern that matches decides the format.
_FORMS: tuple[tuple[Callable[[str], Optional[re.Match[str]]], Callable[[re.Match[str]], ClassifiedFootnote]], ...] = (
    (_MARKDOWN_LINK_RE.search, _markdown_link),
    (_TEXT_THEN_URL_RE.match, _text_then_url),
    (_BARE_URL_RE.match, _bare_url),
)


def classify_footnote(text: str) -> ClassifiedFootnote:
    """Classify the content of a definition (the part after ``[^N]:``)."""
    content = text.strip()
    for predicate, normalizer in _FORMS:
        match = predicate(content)
        if match:
            return normalizer(match)
    return ClassifiedFootnote(FootnoteFormat.NO_URL, None, content)


def parse_footnote_definitions(body: str) -> list[FootnoteDefinition]:
    """Every definition line in document order, duplicates included."""
    definitions: list[FootnoteDefinition] = []
    for index, line in enumerate(body.split("\n")):
        match = DEFINITION_RE.match(line.strip())
        if not match:
            continue
        classified = classify_footnote(match.group(2))
        definitions.append(
            FootnoteDefinition(
                number=int(match.group(1)),
                raw=line,
                format=classified.format,
                url=classified.url,
                link_text=classified.link_text,
                line=index,
            )
        )
    return definitions


def find_footnote_refs(body: str) -> set[int]:
    """Footnote numbers referenced inline, ignoring definition lines."""
    refs: set[int] = set()
    for line in body.split("\n"):
        if is_definition_line(line):
            continue
        refs.update(int(m.group(1)) for m in INLINE_REF_RE.finditer(line))
    return refs


def find_footnote_defs(body: str) -> set[int]:
    return {d.number for d in parse_footnote_definitions(body)}


def inline_ref_numbers(text: str) -> list[int]:
    """Inline reference numbers in order of appearance, without duplicates."""
    seen: list[int] = []
    for line in text.split("\n"):
        if is_definition_line(line):
            continue
        for match in INLINE_REF_RE.finditer(line):
            number = int(match.group(1))
            if number not in seen:
                seen.append(number)
    return seen


# ---------------------------------------------------------------------------
# Claim context
# ---------------------------------------------------------------------------


def find_reference_line(lines: list[str], number: int) -> Optional[int]:
    """Index of the first non-definition line that references *number*."""
    pattern = ref_pattern(number)
    for index, line in enumerate(lines):
        if is_definition_line(line):
            continue
        if pattern.search(line):
            return index
    return None


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip(" \t"))


def list_item_bounds(lines: list[str], index: int) -> Optional[tuple[int, int]]:
    """Return ``(start, end)`` (end exclusive) of the list item holding *index*.

    An item is its marker line plus the following lines indented deeper
    than the marker. Returns None when the line is not part of a list item.
    """
    start: Optional[int] = None
    if LIST_ITEM_RE.match(lines[index]):
        start = index
    elif lines[index].strip() and _indent(lines[index]) > 0:
        indent = _indent(lines[index])
        for j in range(index - 1, -1, -1):
            candidate = lines[j]
            if not candidate.strip():
                return None
            marker = LIST_ITEM_RE.match(candidate)
            if marker and len(marker.group(1)) < indent:
                start = j
                break
            if _indent(candidate) == 0:
                return None
    if start is None:
        return None

    item_indent = _indent(lines[start])
    end = start + 1
    while end < len(lines):
        line = lines[end]
        if not line.strip() or _indent(line) <= item_indent:
            break
        end += 1
    return start, end


def extract_claim_context(body: str, number: int, window: int = CONTEXT_WINDOW) -> str:
    """Lines around the first reference to *number*, for prompt context.

    Returns a ``±window`` line slice, or just the enclosing list item when
    the reference sits inside one. Empty string when there is no reference.
    """
    lines = body.split("\n")
    index = find_reference_line(lines, number)
    if index is None:
        return ""
    bounds = list_item_bounds(lines, index)
    if bounds:
        return "\n".join(lines[bounds[0] : bounds[1]])
    start = max(0, index - window)
    return "\n".join(lines[start : index + window + 1])


def _citation_context(lines: list[str], index: int) -> str:
    bounds = list_item_bounds(lines, index)
    if bounds:
        candidates = lines[bounds[0] : bounds[1]]
    else:
        candidates = lines[max(0, index - 1) : index + 2]
    joined = " ".join(line.strip() for line in candidates if line.strip())
    return re.sub(r"\s+", " ", joined)[:CLAIM_CONTEXT_CHARS]


@dataclass(frozen=True)
class SectionSpan:
    heading: str
    text: str
    start_line: int
    end_line: int


def extract_section_context(body: str, number: int) -> Optional[SectionSpan]:
    """Heading-bounded block around the first reference to *number*.

    The block starts at the nearest preceding ``##``/``###`` heading and
    stops before the next heading, the first footnote definition, or a code
    fence. ``end_line`` is exclusive; trailing blank lines are dropped.
    """
    lines = body.split("\n")
    index = find_reference_line(lines, number)
    if index is None:
        return None

    start = 0
    heading = ""
    for j in range(index, -1, -1):
        if HEADING_RE.match(lines[j]):
            start, heading = j, lines[j].strip()
            break
        if j != index and FENCE_RE.match(lines[j].strip()):
            start = j + 1
            break

    end = len(lines)
    for j in range(index + 1, len(lines)):
        line = lines[j]
        if HEADING_RE.match(line) or is_definition_line(line) or FENCE_RE.match(line.strip()):
            end = j
            break
    while end > start + 1 and not lines[end - 1].strip():
        end -= 1

    return SectionSpan(
        heading=heading,
        text="\n".join(lines[start:end]),
        start_line=start,
        end_line=end,
    )


_SENTENCE_BREAKERS = ("#", "|", "---", "```")


def extract_claim_sentence(body: str, number: int) -> str:
    """The sentence(s) carrying the reference, with all markers stripped."""
    lines = body.split("\n")
    index = find_reference_line(lines, number)
    if index is None:
        return ""

    def breaks(line: str) -> bool:
        stripped = line.strip()
        return stripped == "" or stripped.startswith(_SENTENCE_BREAKERS)

    bounds = list_item_bounds(lines, index)
    if bounds:
        paragraph_lines = [line.strip() for line in lines[bounds[0] : bounds[1]]]
    else:
        paragraph_lines = []
        for j in range(index, -1, -1):
            if breaks(lines[j]):
                break
            paragraph_lines.insert(0, lines[j].strip())
        for j in range(index + 1, len(lines)):
            if breaks(lines[j]):
                break
            paragraph_lines.append(lines[j].strip())

    paragraph = re.sub(r"\s+", " ", " ".join(paragraph_lines))
    sentences = re.split(r"(?<=[.!?])\s+", paragraph)
    pattern = ref_pattern(number)
    matching = [s for s in sentences if pattern.search(s)]
    source = " ".join(matching) if matching else lines[index]
    return re.sub(r"\s+", " ", ANY_MARKER_RE.sub("", source)).strip()


# ---------------------------------------------------------------------------
# Citation extraction
# ---------------------------------------------------------------------------


def extract_citations(body: str) -> list[ExtractedCitation]:
    """One citation per footnote definition that carries a URL.

    When a number is defined twice the first definition wins. Citations
    are returned sorted by footnote number.
    """
    lines = body.split("\n")
    first_defs: dict[int, FootnoteDefinition] = {}
    for definition in parse_footnote_definitions(body):
        first_defs.setdefault(definition.number, definition)

    citations: list[ExtractedCitation] = []
    for number, definition in sorted(first_defs.items()):
        if not definition.url:
            continue
        index = find_reference_line(lines, number)
        if index is None:
            context, ref_line = "(footnote definition only, no inline reference found)", 0
        else:
            context, ref_line = _citation_context(lines, index), index + 1
        citations.append(
            ExtractedCitation(
                footnote=number,
                url=definition.url,
                link_text=definition.link_text,
                claim_context=context,
                ref_line=ref_line,
            )
        )
    return citations
