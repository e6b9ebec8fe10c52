"""
Tests for ordered-fallback field extraction
"""

from gotnodes.normalizer import FieldSpec, first_match, key_path, normalize, pattern
from gotnodes.utils import to_num


class TestExtractors:
    def test_key_path_walks_dicts_and_lists(self):
        payload = {"data": [{"balance": 5}, {"balance": 7}]}
        assert key_path("data", 1, "balance")(payload) == 7
        assert key_path("data", -1, "balance")(payload) == 7
        assert key_path("data", 5, "balance")(payload) is None
        assert key_path("missing", "deeper")(payload) is None
        assert key_path("data", "balance")(payload) is None

    def test_pattern_only_reads_text(self):
        extract = pattern(r"APR\s*([\d.]+)%")
        assert extract("Current APR 2.94% today") == "2.94"
        assert extract({"apr": 2.94}) is None
        assert extract("nothing here") is None

    def test_first_match_skips_empty_values(self):
        payload = {"a": "", "b": None, "c": "value"}
        assert first_match(payload, [key_path("a"), key_path("b"), key_path("c")]) == "value"
        assert first_match(payload, [key_path("a")]) is None

    def test_first_match_ignores_extractor_errors(self):
        def broken(payload):
            raise TypeError("bad shape")

        assert first_match({"x": 1}, [broken, key_path("x")]) == 1


class TestFieldSpec:
    def test_falls_through_unconvertible_candidates(self):
        spec = FieldSpec("amount", [key_path("a"), key_path("b")], to_num)
        assert spec.extract({"a": "n/a", "b": "5"}) == 5.0

    def test_missing_field_is_none(self):
        spec = FieldSpec("amount", [key_path("a")], to_num)
        assert spec.extract({}) is None

    def test_normalize_builds_dict(self):
        specs = [
            FieldSpec("count", [key_path("validatorCount"), key_path("count")], int),
            FieldSpec("label", [key_path("name")]),
        ]
        assert normalize({"count": "12"}, specs) == {"count": 12, "label": None}
