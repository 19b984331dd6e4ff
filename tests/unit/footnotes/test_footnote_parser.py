"""Unit tests for footnote parsing, classification and claim context."""

import pytest

from citeguard.footnotes.normalize import normalize_footnotes
from citeguard.footnotes.parser import (
    classify_footnote,
    extract_best_title,
    extract_citations,
    extract_claim_context,
    extract_claim_sentence,
    extract_section_context,
    find_footnote_defs,
    find_footnote_refs,
    inline_ref_numbers,
    parse_footnote_definitions,
    split_frontmatter,
)
from citeguard.models import FootnoteFormat

PAGE = """---
title: Example
---
Intro paragraph.

## Funding

The lab received $10M in 2023.[^1] It later grew.[^10]

- First item cites a report.[^2]
  continued detail line

[^1]: [Annual Report](https://example.org/report)
[^2]: Smith, "Big Study," 2021 https://www.example.com/study
[^10]: https://data.example.net/table
[^11]: A note without a link
"""


class TestClassification:
    def test_markdown_link(self):
        result = classify_footnote("[Annual Report](https://example.org/report)")
        assert result.format == FootnoteFormat.MARKDOWN_LINK
        assert result.url == "https://example.org/report"
        assert result.link_text == "Annual Report"

    def test_text_then_url_uses_best_title(self):
        result = classify_footnote('Anthropic, "Core Views on AI Safety," March 2023 https://anthropic.com/core-views')
        assert result.format == FootnoteFormat.TEXT_THEN_URL
        assert result.url == "https://anthropic.com/core-views"
        assert result.link_text == "Core Views on AI Safety (Anthropic, March 2023)"

    def test_short_context_parts_are_dropped(self):
        assert extract_best_title('FLI, "2025 AI Safety Index," Summer 2025') == "2025 AI Safety Index (Summer 2025)"

    def test_bare_url_strips_trailing_punctuation(self):
        result = classify_footnote("https://example.org/page.")
        assert result.format == FootnoteFormat.BARE_URL
        assert result.url == "https://example.org/page"

    def test_no_url(self):
        result = classify_footnote("Personal communication")
        assert result.format == FootnoteFormat.NO_URL
        assert result.url is None

    def test_best_title_without_quotes(self):
        assert extract_best_title("Some report title,") == "Some report title"


def test_split_frontmatter():
    frontmatter, body = split_frontmatter(PAGE)
    assert frontmatter.startswith("---\ntitle: Example")
    assert body.startswith("Intro paragraph.")


def test_refs_and_defs_distinguish_one_from_ten():
    _, body = split_frontmatter(PAGE)
    assert find_footnote_refs(body) == {1, 2, 10}
    assert find_footnote_defs(body) == {1, 2, 10, 11}
    assert inline_ref_numbers(body) == [1, 10, 2]


def test_parse_definitions_records_line_and_format():
    definitions = parse_footnote_definitions("text\n[^3]: https://a.example/x\n")
    assert len(definitions) == 1
    assert definitions[0].number == 3
    assert definitions[0].line == 1
    assert definitions[0].format == FootnoteFormat.BARE_URL


def test_extract_citations_only_urls_sorted_first_definition_wins():
    body = PAGE + "[^1]: https://duplicate.example/ignored\n"
    citations = extract_citations(split_frontmatter(body)[1])
    assert [c.footnote for c in citations] == [1, 2, 10]
    assert citations[0].url == "https://example.org/report"
    assert citations[0].ref_line > 0
    assert "$10M" in citations[0].claim_context


def test_citation_without_inline_reference_gets_placeholder_context():
    citations = extract_citations("[^4]: https://orphan.example/x")
    assert citations[0].ref_line == 0
    assert "no inline reference" in citations[0].claim_context


class TestClaimContext:
    def test_reference_to_ten_does_not_match_one(self):
        body = "Alpha fact.[^10]\n\nBeta fact.[^1]\n"
        assert extract_claim_sentence(body, 1) == "Beta fact."
        assert extract_claim_sentence(body, 10) == "Alpha fact."

    def test_claim_sentence_picks_sentence_with_marker(self):
        body = "First sentence. The lab received $10M[^1]. Unrelated tail[^2].\n"
        assert extract_claim_sentence(body, 1) == "The lab received $10M."

    def test_claim_sentence_missing_reference(self):
        assert extract_claim_sentence("No refs here.", 3) == ""

    def test_list_item_context(self):
        _, body = split_frontmatter(PAGE)
        context = extract_claim_context(body, 2)
        assert context.startswith("- First item")
        assert "continued detail line" in context

    def test_section_context_stops_at_definitions(self):
        _, body = split_frontmatter(PAGE)
        span = extract_section_context(body, 1)
        assert span is not None
        assert span.heading == "## Funding"
        assert "[^1]: " not in span.text

    @pytest.mark.parametrize("number", [5, 11])
    def test_section_context_none_without_reference(self, number):
        _, body = split_frontmatter(PAGE)
        assert extract_section_context(body, number) is None


def test_normalize_rewrites_text_then_url_only():
    content, changes = normalize_footnotes(PAGE)
    assert [c.footnote for c in changes] == [2]
    assert '[^2]: [Big Study (Smith, 2021)](https://www.example.com/study)' in content
    assert "[^1]: [Annual Report](https://example.org/report)" in content
    assert "[^10]: https://data.example.net/table" in content
