# tests/test_config.py
"""
Tests for the JSON configuration loader.
"""

import json
import logging

import pytest

from anchorscan.config import (
    DEFAULT_CONFIG_NAME,
    apply_config,
    find_default_config,
    load_config,
    parse_config,
    parse_severity,
)
from anchorscan.diagnostics import Severity
from anchorscan.errors import ConfigError


class TestParseConfig:

    def test_full_entry(self):
        configs = parse_config({
            "detectors": {
                "MISSING_SIGNER": {"enabled": True, "severity": "error", "patterns": ["Context<"]},
            }
        })
        config = configs["MISSING_SIGNER"]
        assert config.enabled
        assert config.severity_override is Severity.ERROR
        assert tuple(config.custom_patterns) == ("Context<",)

    def test_defaults(self):
        config = parse_config({"detectors": {"UNSAFE_ARITHMETIC": {}}})["UNSAFE_ARITHMETIC"]
        assert config.enabled
        assert config.severity_override is None
        assert tuple(config.custom_patterns) == ()

    def test_empty_document(self):
        assert parse_config({}) == {}

    @pytest.mark.parametrize("data", [
        [],
        {"detectors": []},
        {"detectors": {"X": "off"}},
        {"detectors": {"X": {"enabled": "no"}}},
        {"detectors": {"X": {"severity": "fatal"}}},
        {"detectors": {"X": {"severity": 3}}},
        {"detectors": {"X": {"patterns": "Context<"}}},
        {"detectors": {"X": {"patterns": [1]}}},
    ], ids=[
        "not-object", "detectors-list", "entry-string", "enabled-string",
        "bad-severity", "numeric-severity", "patterns-string", "patterns-int",
    ])
    def test_invalid(self, data):
        with pytest.raises(ConfigError):
            parse_config(data)

    def test_unknown_keys_warn(self, caplog):
        with caplog.at_level(logging.WARNING, logger="anchorscan.config"):
            parse_config({"detectors": {"X": {"enabeld": False}}})
        assert "enabeld" in caplog.text


class TestParseSeverity:

    def test_aliases(self):
        assert parse_severity("warn") is Severity.WARNING
        assert parse_severity("info") is Severity.INFORMATION

    def test_error_names_the_setting(self):
        with pytest.raises(ConfigError, match="detectors.X.severity"):
            parse_severity("loud", "detectors.X.severity")


class TestLoadConfig:

    def test_load(self, tmp_path):
        path = tmp_path / DEFAULT_CONFIG_NAME
        path.write_text(json.dumps({"detectors": {"MISSING_SIGNER": {"enabled": False}}}))
        configs = load_config(path)
        assert not configs["MISSING_SIGNER"].enabled

    def test_invalid_json(self, tmp_path):
        path = tmp_path / DEFAULT_CONFIG_NAME
        path.write_text("{ not json")
        with pytest.raises(ConfigError, match="invalid JSON"):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="cannot read"):
            load_config(tmp_path / "absent.json")

    def test_find_default_config(self, tmp_path):
        assert find_default_config(tmp_path) is None
        (tmp_path / DEFAULT_CONFIG_NAME).write_text("{}")
        assert find_default_config(tmp_path) == tmp_path / DEFAULT_CONFIG_NAME


class TestApplyConfig:

    def test_apply(self, registry):
        apply_config(registry, parse_config({
            "detectors": {
                "UNSAFE_ARITHMETIC": {"enabled": False},
                "MISSING_SIGNER": {"severity": "hint"},
            }
        }))
        assert not registry.config("UNSAFE_ARITHMETIC").enabled
        assert registry.config("MISSING_SIGNER").severity_override is Severity.HINT

    def test_unknown_detector_is_skipped(self, registry, caplog):
        with caplog.at_level(logging.WARNING, logger="anchorscan.config"):
            apply_config(registry, parse_config({"detectors": {"NOPE": {}}}))
        assert "NOPE" in caplog.text
        assert "NOPE" not in registry
