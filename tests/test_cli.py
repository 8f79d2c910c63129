# tests/test_cli.py
"""
Tests for the ``anchorscan`` command line: formats, exit codes and the
configuration options.
"""

import json

import pytest

from anchorscan import __version__
from anchorscan.cli import EXIT_ERROR, EXIT_INFRA, EXIT_OK, main

from tests.conftest import CLEAN_PROGRAM, RAW_VAULT_WRITE, write_tree


class TestExitCodes:

    def test_warnings_only(self, anchor_workspace, capsys):
        assert main([str(anchor_workspace), "--color", "never"]) == EXIT_OK
        out = capsys.readouterr().out
        assert "MISSING_SIGNER" in out
        assert "1 warning (1 total)" in out

    def test_errors(self, tmp_path, capsys):
        write_tree(tmp_path, {"src/lib.rs": RAW_VAULT_WRITE})
        assert main([str(tmp_path / "src/lib.rs"), "--color", "never"]) == EXIT_ERROR
        assert "IMMUTABLE_ACCOUNT_MUTATED" in capsys.readouterr().out

    def test_clean(self, tmp_path, capsys):
        write_tree(tmp_path, {"src/lib.rs": CLEAN_PROGRAM})
        assert main([str(tmp_path), "--color", "never"]) == EXIT_OK
        assert "no diagnostics emitted" in capsys.readouterr().out

    def test_missing_path(self, tmp_path, capsys):
        assert main([str(tmp_path / "nowhere")]) == EXIT_INFRA

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as info:
            main(["--version"])
        assert info.value.code == 0
        assert __version__ in capsys.readouterr().out


class TestFormats:

    def test_json(self, anchor_workspace, capsys):
        assert main([str(anchor_workspace), "--format", "json"]) == EXIT_OK
        doc = json.loads(capsys.readouterr().out)
        assert [d["code"] for d in doc["diagnostics"]] == ["MISSING_SIGNER"]
        assert doc["summary"]["filesScanned"] == 2
        assert doc["summary"]["flaggedFiles"] == 1

    def test_sarif(self, anchor_workspace, capsys):
        main([str(anchor_workspace), "-f", "sarif"])
        log = json.loads(capsys.readouterr().out)
        rules = log["runs"][0]["tool"]["driver"]["rules"]
        assert len(rules) == 9
        assert log["runs"][0]["results"][0]["ruleId"] == "MISSING_SIGNER"

    def test_output_file(self, anchor_workspace, tmp_path, capsys):
        target = tmp_path / "report.json"
        assert main([str(anchor_workspace), "-f", "json", "-o", str(target)]) == EXIT_OK
        assert capsys.readouterr().out == ""
        assert json.loads(target.read_text())["summary"]["totalIssueCount"] == 1


class TestOptions:

    def test_disable(self, anchor_workspace, capsys):
        main([str(anchor_workspace), "-f", "json", "--disable", "MISSING_SIGNER"])
        assert json.loads(capsys.readouterr().out)["diagnostics"] == []

    def test_severity_override(self, anchor_workspace, capsys):
        code = main([str(anchor_workspace), "-f", "json", "--severity", "MISSING_SIGNER=error"])
        assert code == EXIT_ERROR
        doc = json.loads(capsys.readouterr().out)
        assert doc["diagnostics"][0]["severity"] == "error"

    @pytest.mark.parametrize("value", ["MISSING_SIGNER", "MISSING_SIGNER=loud", "=error"])
    def test_bad_severity_option(self, anchor_workspace, value):
        assert main([str(anchor_workspace), "--severity", value]) == EXIT_INFRA

    def test_default_config_file(self, anchor_workspace, capsys):
        (anchor_workspace / "anchorscan.json").write_text(
            json.dumps({"detectors": {"MISSING_SIGNER": {"enabled": False}}})
        )
        main([str(anchor_workspace), "-f", "json"])
        assert json.loads(capsys.readouterr().out)["diagnostics"] == []

    def test_explicit_config_file(self, anchor_workspace, tmp_path, capsys):
        config = tmp_path / "custom.json"
        config.write_text(json.dumps({"detectors": {"MISSING_SIGNER": {"severity": "hint"}}}))
        main([str(anchor_workspace), "-f", "json", "-c", str(config)])
        doc = json.loads(capsys.readouterr().out)
        assert doc["diagnostics"][0]["severity"] == "hint"

    def test_broken_config_file(self, anchor_workspace):
        (anchor_workspace / "anchorscan.json").write_text("{")
        assert main([str(anchor_workspace)]) == EXIT_INFRA

    def test_list_detectors(self, capsys):
        assert main(["--list-detectors", "--disable", "UNSAFE_ARITHMETIC"]) == EXIT_OK
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 9
        assert lines[0].startswith("MISSING_SIGNER")
        (arith,) = [line for line in lines if line.startswith("UNSAFE_ARITHMETIC")]
        assert "disabled" in arith
