"""
Tests for text cleaning, chunking, content hashing and URL helpers.
"""

import re

import pytest

from scheme_savvy.config import DEFAULT_ALLOWED_DOMAINS
from scheme_savvy.utils import (
    chunk_content,
    clean_content,
    content_hash,
    html_to_text,
    is_allowed_domain,
    normalize_url,
    title_from_url,
)

ALLOWED = DEFAULT_ALLOWED_DOMAINS.split(",")
CHUNKABLE_TEXTS = [
    "\n\n".join(f"Paragraph {i} " + " ".join(["word"] * 40) for i in range(30)),
    "\n".join(f"Line {i} " + "y" * 90 for i in range(50)),
]


class TestCleanContent:
    def test_removes_navigation_and_footer_lines(self):
        raw = "Home\nLogin\nPM Awas Yojana provides housing for all.\nCopyright 2024 NIC\nLoading...\nPrivacy Policy"
        assert clean_content(raw) == "PM Awas Yojana provides housing for all."

    def test_removes_blank_and_short_lines_but_keeps_numbers(self):
        raw = "Eligibility\n\n  \nab\n12\nx\nIncome below 3 lakh"
        assert clean_content(raw) == "Eligibility\n12\nIncome below 3 lakh"

    def test_removes_lines_containing_noise_substrings(self):
        raw = "Open ISL Chatbot here\nGive translation feedback\nLodge on CPGRAMS portal\nBenefit: Rs 5000"
        assert clean_content(raw) == "Benefit: Rs 5000"

    def test_kept_lines_are_unchanged(self):
        raw = "  Indented scheme line  \nHOME"
        assert clean_content(raw) == "  Indented scheme line  "

    def test_is_idempotent(self):
        raw = "Menu\nScholarship for students\n\n7\nTwitter\nApply at scholarships.gov.in\nab"
        once = clean_content(raw)
        assert clean_content(once) == once

    def test_empty_input(self):
        assert clean_content("") == ""


class TestChunkContent:
    def test_short_text_is_single_chunk(self):
        assert chunk_content("One paragraph.\n\nTwo paragraph.") == ["One paragraph.\n\nTwo paragraph."]

    def test_chunks_respect_max_size(self):
        paragraphs = [f"Paragraph {i} " + "word " * 40 for i in range(30)]
        text = "\n\n".join(paragraphs)
        chunks = chunk_content(text, 500)
        assert len(chunks) > 1
        assert all(len(c) <= 500 for c in chunks)

    def test_chunks_preserve_paragraph_order(self):
        paragraphs = [f"P{i:02d} " + "x" * 200 for i in range(10)]
        chunks = chunk_content("\n\n".join(paragraphs), 500)
        joined = "\n\n".join(chunks)
        positions = [joined.index(f"P{i:02d}") for i in range(10)]
        assert positions == sorted(positions)

    def test_long_paragraph_without_blank_lines_is_split_on_lines(self):
        text = "\n".join(f"Line {i} " + "y" * 90 for i in range(50))
        chunks = chunk_content(text, 1000)
        assert len(chunks) > 1
        assert all(len(c) <= 1000 for c in chunks)

    def test_single_oversized_line_is_kept_whole(self):
        line = "z" * 1500
        assert chunk_content(line, 1000) == [line]

    def test_no_empty_chunks(self):
        chunks = chunk_content("A first paragraph.\n\n\n\nA second paragraph.", 20)
        assert chunks and all(c.strip() for c in chunks)

    @pytest.mark.parametrize("text", CHUNKABLE_TEXTS)
    def test_chunks_reconstruct_input(self, text):
        chunks = chunk_content(text, 500)
        assert re.sub(r"\s+", "", "".join(chunks)) == re.sub(r"\s+", "", text)

    @pytest.mark.parametrize("text", CHUNKABLE_TEXTS)
    def test_rechunking_a_chunk_returns_it_unchanged(self, text):
        for chunk in chunk_content(text, 500):
            assert chunk_content(chunk, 500) == [chunk]

    def test_empty_input(self):
        assert chunk_content("") == []


class TestContentHash:
    def test_is_sha256_hex(self):
        digest = content_hash("https://pmkisan.gov.in", "text")
        assert len(digest) == 64
        int(digest, 16)

    def test_same_input_same_hash(self):
        assert content_hash("u", "abc") == content_hash("u", "abc")

    def test_source_changes_hash(self):
        assert content_hash("u1", "abc") != content_hash("u2", "abc")

    def test_only_prefix_contributes(self):
        base = "a" * 500
        assert content_hash("u", base + "tail one") == content_hash("u", base + "tail two")


class TestAllowedDomain:
    @pytest.mark.parametrize(
        "url",
        [
            "https://pmkisan.gov.in/x",
            "https://www.india.gov.in/",
            "https://nrega.nic.in/home",
            "https://some.state.gov.in/scheme",
        ],
    )
    def test_government_hosts_are_allowed(self, url):
        assert is_allowed_domain(url, ALLOWED)

    @pytest.mark.parametrize(
        "url",
        [
            "https://evil.com/pmkisan.gov.in",
            "https://evil.com/?next=india.gov.in",
            "https://example.com",
            "not a url",
            "",
        ],
    )
    def test_other_hosts_are_rejected(self, url):
        assert not is_allowed_domain(url, ALLOWED)

    def test_host_check_is_case_insensitive(self):
        assert is_allowed_domain("https://PMKISAN.GOV.IN/page", ALLOWED)


class TestUrlHelpers:
    def test_normalize_url_strips_fragment_and_trailing_slash(self):
        assert normalize_url(" https://india.gov.in/schemes/#top ") == "https://india.gov.in/schemes"

    def test_title_from_url_uses_last_path_segment(self):
        assert title_from_url("https://x.gov.in/schemes/pm-kisan_details.html") == "Pm Kisan Details"

    def test_title_from_url_falls_back(self):
        assert title_from_url("https://x.gov.in/") == "Government Document"


class TestHtmlToText:
    def test_extracts_title_and_structured_text(self):
        html = (
            "<html><head><title> Ayushman Bharat </title><script>var x=1;</script></head>"
            "<body><nav>Menu</nav><h1>PM-JAY</h1><p>Health cover of Rs 5 lakh.</p>"
            "<ul><li>Cashless treatment</li></ul><footer>Copyright</footer></body></html>"
        )
        title, text = html_to_text(html)
        assert title == "Ayushman Bharat"
        assert text.split("\n") == ["PM-JAY", "Health cover of Rs 5 lakh.", "Cashless treatment"]

    def test_falls_back_to_page_text(self):
        _, text = html_to_text("<html><body><div>Only a div</div></body></html>")
        assert text == "Only a div"
