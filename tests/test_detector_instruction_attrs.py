# tests/test_detector_instruction_attrs.py
"""
Tests for the ``#[instruction(...)]`` validators:
INSTRUCTION_ATTRIBUTE_UNUSED and INSTRUCTION_ATTRIBUTE_INVALID.
"""

import textwrap

import pytest

from anchorscan.detectors.instruction_attrs import (
    InstructionAttributeInvalidDetector,
    InstructionAttributeUnusedDetector,
    mentions_identifier,
    normalize_type,
)
from anchorscan.diagnostics import Severity

from tests.conftest import CLEAN_PROGRAM, INSTRUCTION_SWAPPED


def _program(declared, handler_params, constraint="mut"):
    return textwrap.dedent(f'''\
        use anchor_lang::prelude::*;

        #[program]
        pub mod demo {{
            use super::*;

            pub fn create(ctx: Context<Create>{handler_params}) -> Result<()> {{
                Ok(())
            }}
        }}

        #[derive(Accounts)]
        #[instruction({declared})]
        pub struct Create<'info> {{
            #[account({constraint})]
            pub data: Account<'info, Data>,
            #[account(mut)]
            pub payer: Signer<'info>,
        }}
    ''')


class TestHelpers:

    @pytest.mark.parametrize("text,expected", [
        ("u64", "u64"),
        ("Vec< u8 >", "vec<u8>"),
        ("&str", "string"),
        ("&'a str", "string"),
        ("Vec<&str>", "vec<string>"),
        ("Option<&'static str>", "option<string>"),
        ("&string_table", "&string_table"),
        ("String", "string"),
        ("Pubkey", "pubkey"),
    ])
    def test_normalize_type(self, text, expected):
        assert normalize_type(text) == expected

    def test_mentions_identifier_word_boundaries(self):
        assert mentions_identifier("seeds = [b\"a\", id.to_le_bytes().as_ref()]", "id")
        assert not mentions_identifier("seeds = [user_id.as_ref()]", "id")
        assert not mentions_identifier("seeds = [idx.as_ref()]", "id")


class TestUnused:

    @pytest.fixture
    def detector(self):
        return InstructionAttributeUnusedDetector()

    def test_all_used(self, detector):
        src = _program(
            "bump: u8, name: String", ", bump: u8, name: String",
            constraint="init, seeds = [name.as_bytes()], bump = bump, payer = payer, space = 64",
        )
        assert detector.analyze(src) == []

    def test_unused_parameter(self, detector):
        src = _program(
            "bump: u8, name: String", ", bump: u8, name: String",
            constraint="init, seeds = [b\"data\"], bump = bump, payer = payer, space = 64",
        )
        (diag,) = detector.analyze(src)
        assert diag.code == "INSTRUCTION_ATTRIBUTE_UNUSED"
        assert diag.severity is Severity.WARNING
        assert "'name'" in diag.message
        assert "'Create'" in diag.message
        line = src.splitlines()[diag.range.start.line]
        assert line[diag.range.start.character:diag.range.end.character] == "name: String"

    def test_swapped_program(self, detector):
        (diag,) = detector.analyze(INSTRUCTION_SWAPPED)
        assert "'y'" in diag.message

    def test_no_instruction_attribute(self, detector):
        assert not detector.should_run(CLEAN_PROGRAM)
        assert detector.analyze(CLEAN_PROGRAM) == []


class TestInvalid:

    @pytest.fixture
    def detector(self):
        return InstructionAttributeInvalidDetector()

    def test_valid_prefix(self, detector):
        src = _program("amount: u64", ", amount: u64, memo: String")
        assert detector.analyze(src) == []

    def test_valid_full_list(self, detector):
        src = _program("amount: u64, memo: &str", ", amount: u64, memo: String")
        assert detector.analyze(src) == []

    def test_str_alias_inside_generic(self, detector):
        src = _program("names: Vec<&str>", ", names: Vec<String>")
        assert detector.analyze(src) == []

    def test_wrong_order(self, detector):
        (diag,) = detector.analyze(INSTRUCTION_SWAPPED)
        assert diag.code == "INSTRUCTION_ATTRIBUTE_INVALID"
        assert diag.severity is Severity.ERROR
        assert "position 1" in diag.message
        assert "same order" in diag.message
        assert "'x'" in diag.message and "'y'" in diag.message

    def test_too_many_parameters(self, detector):
        src = _program("amount: u64, extra: u8", ", amount: u64")
        (diag,) = detector.analyze(src)
        assert "'extra'" in diag.message
        assert "not found in handler" in diag.message
        assert "'create'" in diag.message

    def test_every_extra_parameter_reported(self, detector):
        src = _program("amount: u64, extra: u8, more: u8", ", amount: u64")
        assert len(detector.analyze(src)) == 2

    def test_type_mismatch(self, detector):
        src = _program("amount: u32", ", amount: u64")
        (diag,) = detector.analyze(src)
        assert "has type 'u32'" in diag.message
        assert "expects type 'u64'" in diag.message

    def test_type_mismatch_then_continue(self, detector):
        src = _program("amount: u32, memo: u8", ", amount: u64, memo: String")
        assert len(detector.analyze(src)) == 2

    def test_without_handler(self, detector):
        src = _program("amount: u64", ", amount: u64").replace(
            "Context<Create>", "Context<Elsewhere>",
        )
        assert detector.analyze(src) == []

    def test_last_handler_wins(self, detector):
        src = _program("amount: u64", ", amount: u64") + textwrap.dedent('''\

            pub fn create_again(ctx: Context<Create>, other: u64) -> Result<()> {
                Ok(())
            }
        ''')
        (diag,) = detector.analyze(src)
        assert "'other'" in diag.message
