# tests/unit/cache/test_unit_fingerprint.py — v2
"""Tests for cache/fingerprint.py."""

from __future__ import annotations

from pydantic import BaseModel

from jobpilot.cache.fingerprint import (
    compute_fingerprint,
    hamming_distance,
    normalize_for_comparison,
    normalize_input_text,
    simhash,
)


class TestComputeFingerprint:
    def test_deterministic(self):
        a = compute_fingerprint("parse_job", "Senior engineer", {"tone": "formal"})
        b = compute_fingerprint("parse_job", "Senior engineer", {"tone": "formal"})
        assert a == b
        assert len(a) == 64

    def test_purpose_changes_key(self):
        assert compute_fingerprint("parse_job", "x") != compute_fingerprint("generate_summary", "x")

    def test_text_changes_key(self):
        assert compute_fingerprint("parse_job", "a") != compute_fingerprint("parse_job", "b")

    def test_whitespace_normalized(self):
        a = compute_fingerprint("parse_job", "Line one\r\nLine two   \n\n\n\nEnd\n")
        b = compute_fingerprint("parse_job", "Line one\nLine two\n\nEnd")
        assert a == b

    def test_case_preserved(self):
        assert compute_fingerprint("parse_job", "Go") != compute_fingerprint("parse_job", "go")

    def test_option_order_irrelevant(self):
        a = compute_fingerprint("rewrite_text", "t", {"tone": "x", "length": "short"})
        b = compute_fingerprint("rewrite_text", "t", {"length": "short", "tone": "x"})
        assert a == b

    def test_option_keys_filter(self):
        keys = ("tone",)
        a = compute_fingerprint("rewrite_text", "t", {"tone": "x", "job_id": 1}, keys)
        b = compute_fingerprint("rewrite_text", "t", {"tone": "x", "job_id": 2}, keys)
        c = compute_fingerprint("rewrite_text", "t", {"tone": "y"}, keys)
        assert a == b
        assert a != c

    def test_none_option_same_as_absent(self):
        a = compute_fingerprint("rewrite_text", "t", {"tone": None}, ("tone",))
        b = compute_fingerprint("rewrite_text", "t", {}, ("tone",))
        assert a == b

    def test_model_options_canonicalized(self):
        class Profile(BaseModel):
            name: str
            skills: list[str]

        as_model = compute_fingerprint(
            "generate_resume", "jd", {"profile": Profile(name="Ana", skills=["go"])},
        )
        as_dict = compute_fingerprint(
            "generate_resume", "jd", {"profile": {"skills": ["go"], "name": "Ana"}},
        )
        assert as_model == as_dict


class TestNormalizeInputText:
    def test_strip_and_collapse(self):
        assert normalize_input_text("  a  \n\n\n\nb  ") == "a\n\nb"

    def test_nfc(self):
        assert normalize_input_text("e\u0301") == "\u00e9"


class TestSimhash:
    def test_identical(self):
        assert simhash("python developer with aws") == simhash("python developer with aws")

    def test_empty(self):
        assert simhash("") == "0" * 16

    def test_punctuation_insensitive(self):
        assert simhash("Python, Django!") == simhash("python django")

    def test_hamming(self):
        assert hamming_distance("0000000000000000", "0000000000000003") == 2
        assert hamming_distance("", "") == 0
        assert hamming_distance("", "ff") == 64
        assert hamming_distance("zz", "00") == 64

    def test_normalize_for_comparison(self):
        assert normalize_for_comparison("  C++ / C#  Dev ") == "c++ c# dev"
