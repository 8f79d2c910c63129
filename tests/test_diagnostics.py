# tests/test_diagnostics.py
"""
Tests for the diagnostic model: severities, ranges, serialization and
the linked-pair builder.
"""

import json
from dataclasses import FrozenInstanceError

import pytest

from anchorscan.diagnostics import (
    Diagnostic,
    DiagnosticBuilder,
    Position,
    Range,
    RelatedInformation,
    Severity,
)


class TestSeverity:

    @pytest.mark.parametrize("text,expected", [
        ("error", Severity.ERROR),
        ("ERROR", Severity.ERROR),
        ("warn", Severity.WARNING),
        ("warning", Severity.WARNING),
        ("info", Severity.INFORMATION),
        ("information", Severity.INFORMATION),
        (" hint ", Severity.HINT),
    ])
    def test_from_string(self, text, expected):
        assert Severity.from_string(text) is expected

    def test_unknown_name(self):
        assert Severity.from_string("fatal") is None

    def test_lsp_codes(self):
        assert [s.lsp_code for s in Severity] == [1, 2, 3, 4]

    def test_sarif_levels(self):
        assert Severity.ERROR.sarif_level == "error"
        assert Severity.HINT.sarif_level == "note"


class TestRange:

    def test_str_is_one_based(self):
        assert str(Range.of(0, 4, 0, 9)) == "1:5"

    def test_contains(self):
        outer = Range.of(1, 0, 5, 0)
        assert outer.contains(Range.of(2, 3, 2, 8))
        assert not outer.contains(Range.of(0, 0, 2, 0))

    def test_ordering(self):
        assert Position(1, 5) < Position(2, 0)
        assert Range.of(0, 0, 0, 1) < Range.of(0, 1, 0, 2)

    def test_to_dict(self):
        assert Range.of(3, 1, 3, 7).to_dict() == {
            "startLine": 3, "startCol": 1, "endLine": 3, "endCol": 7,
        }


class TestDiagnostic:

    @pytest.fixture
    def diag(self):
        return DiagnosticBuilder.create(
            Range.of(2, 4, 2, 10), "something is off", Severity.WARNING, "SOME_CODE",
        )

    def test_defaults(self, diag):
        assert diag.source == "anchorscan"
        assert diag.related_information == ()
        assert diag.file_path == ""

    def test_with_severity_is_a_copy(self, diag):
        promoted = diag.with_severity(Severity.ERROR)
        assert promoted.severity is Severity.ERROR
        assert diag.severity is Severity.WARNING

    def test_to_dict_omits_empty_fields(self, diag):
        data = diag.to_dict()
        assert data["severity"] == "warning"
        assert data["code"] == "SOME_CODE"
        assert "filePath" not in data
        assert "relatedInformation" not in data

    def test_json_round_trip_keys(self, diag):
        data = json.loads(diag.with_file("src/lib.rs").to_json_str())
        assert data["filePath"] == "src/lib.rs"
        assert data["range"]["startLine"] == 2

    def test_gcc_format(self, diag):
        line = diag.with_file("src/lib.rs").to_gcc_format()
        assert line == "src/lib.rs:3:5: warning: something is off [SOME_CODE]"

    def test_frozen(self, diag):
        with pytest.raises(FrozenInstanceError):
            diag.message = "changed"


class TestLinkedPair:

    def test_each_side_points_at_the_other(self):
        site = Range.of(10, 8, 10, 30)
        decl = Range.of(20, 4, 20, 40)
        primary, related = DiagnosticBuilder.linked_pair(
            primary_range=site,
            primary_message="mutated",
            related_range=decl,
            related_message="declared",
            primary_to_related="see declaration",
            related_to_primary="see mutation",
            severity=Severity.ERROR,
            code="PAIR",
            file_path="lib.rs",
        )
        assert primary.range == site
        assert related.range == decl
        assert primary.related_information == (
            RelatedInformation(decl, "lib.rs", "see declaration"),
        )
        assert related.related_information == (
            RelatedInformation(site, "lib.rs", "see mutation"),
        )
        assert primary.code == related.code == "PAIR"

    def test_serialized_related_information(self):
        primary, _ = DiagnosticBuilder.linked_pair(
            Range.of(0, 0, 0, 1), "a", Range.of(1, 0, 1, 1), "b",
            "to b", "to a", Severity.ERROR, "PAIR",
        )
        data = primary.to_dict()
        assert data["relatedInformation"][0]["message"] == "to b"
        assert data["relatedInformation"][0]["range"]["startLine"] == 1


class TestDiagnosticEquality:

    def test_value_semantics(self):
        a = Diagnostic(Range.of(0, 0, 0, 1), Severity.HINT, "X", "m")
        b = Diagnostic(Range.of(0, 0, 0, 1), Severity.HINT, "X", "m")
        assert a == b
        assert len({a, b}) == 1
