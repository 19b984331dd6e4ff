"""Split pages into frontmatter, preamble and ``##`` sections; renumber footnotes."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List

from citeguard.footnotes.parser import FENCE_RE, FRONTMATTER_RE

_H2_RE = re.compile(r"^## ")
_ANY_DEF_RE = re.compile(r"^\[\^([^\]]+)\]:\s*(.+)$", re.MULTILINE)
_ANY_DEF_LINE_RE = re.compile(r"^\[\^([^\]]+)\]:\s*.+\n?", re.MULTILINE)
_ANY_REF_RE = re.compile(r"\[\^([^\]]+)\]")


@dataclass
class ParsedSection:
    id: str
    heading: str
    content: str


@dataclass
class SplitPage:
    frontmatter: str = ""
    preamble: str = ""
    sections: List[ParsedSection] = field(default_factory=list)


def heading_to_id(heading: str) -> str:
    """``'## Key Challenges (2023-2025)'`` -> ``'key-challenges-2023-2025'``."""
    text = re.sub(r"^#+\s*", "", heading).lower()
    return re.sub(r"[^a-z0-9]+", "-", text).strip("-")


def split_into_sections(content: str) -> SplitPage:
    """Only ``##`` headings start a section, and never inside a code fence."""
    frontmatter = ""
    body = content
    match = FRONTMATTER_RE.match(content)
    if match:
        frontmatter = match.group(1)
        body = content[len(frontmatter) :]

    page = SplitPage(frontmatter=frontmatter)
    preamble: List[str] = []
    current: List[str] | None = None
    heading = ""
    in_fence = False

    def flush() -> None:
        page.sections.append(
            ParsedSection(id=heading_to_id(heading), heading=heading, content="\n".join([heading, *current]))
        )

    for line in body.split("\n"):
        if FENCE_RE.match(line):
            in_fence = not in_fence
        if not in_fence and _H2_RE.match(line):
            if current is not None:
                flush()
            heading = line
            current = []
        elif current is not None:
            current.append(line)
        else:
            preamble.append(line)

    if current is not None:
        flush()
    page.preamble = "\n".join(preamble)
    return page


def reassemble_sections(page: SplitPage) -> str:
    parts: List[str] = []
    if page.frontmatter:
        parts.append(page.frontmatter.rstrip())
    if page.preamble.strip():
        parts.append(page.preamble.rstrip())
    parts.extend(section.content.rstrip() for section in page.sections)
    return re.sub(r"\n{3,}", "\n\n", "\n\n".join(parts) + "\n")


def renumber_footnotes(content: str) -> str:
    """Renumber ``[^1]``, ``[^SRC-1]``... to 1..N by first inline appearance.

    Definitions are rebuilt at the end in the new order; the first definition
    of a marker wins. A reference with no definition keeps its new number but
    gets no definition line.
    """
    definitions: Dict[str, str] = {}
    for match in _ANY_DEF_RE.finditer(content):
        definitions.setdefault(match.group(1), match.group(2))

    if not definitions and not _ANY_REF_RE.search(content):
        return content

    stripped = _ANY_DEF_LINE_RE.sub("", content)
    stripped = re.sub(r"\n{3,}", "\n\n", stripped).rstrip()

    mapping: Dict[str, int] = {}
    for match in _ANY_REF_RE.finditer(stripped):
        mapping.setdefault(match.group(1), len(mapping) + 1)
    if not mapping:
        return stripped + "\n"

    renumbered = _ANY_REF_RE.sub(lambda m: f"[^{mapping[m.group(1)]}]", stripped)
    lines = [
        f"[^{number}]: {definitions[marker]}"
        for marker, number in sorted(mapping.items(), key=lambda item: item[1])
        if marker in definitions
    ]
    if not lines:
        return renumbered + "\n"
    return renumbered + "\n\n" + "\n".join(lines) + "\n"
