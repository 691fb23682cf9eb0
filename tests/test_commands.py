"""Tests for explicit remember commands."""

from __future__ import annotations

import pytest

from anna.core.commands import is_remember_command, parse


class TestParse:
    def test_typed_command(self):
        cmd = parse("merk dir: preference tone = Schritt-für-Schritt")
        assert cmd is not None
        assert cmd.type == "preference"
        assert cmd.key == "tone"
        assert cmd.value == "Schritt-für-Schritt"
        assert cmd.confidence == "high"

    def test_untyped_key_words_joined(self):
        cmd = parse("remember: favourite editor = vim")
        assert cmd.type == "preference"
        assert cmd.key == "favourite_editor"
        assert cmd.value == "vim"

    def test_type_token_case_insensitive(self):
        cmd = parse("remember: PROJECT main stack = FastAPI")
        assert cmd.type == "project"
        assert cmd.key == "main_stack"

    def test_single_type_word_is_key(self):
        cmd = parse("remember: user = Pete")
        assert cmd.type == "preference"
        assert cmd.key == "user"

    def test_address_token(self):
        for text in ("Anna, merk dir: user name = Pete", "anna remember: user name = Pete"):
            cmd = parse(text)
            assert cmd is not None
            assert cmd.type == "user"
            assert cmd.key == "name"
            assert cmd.value == "Pete"

    def test_confidence_annotation(self):
        cmd = parse("merk dir: tone = kurz @medium")
        assert cmd.confidence == "medium"
        assert cmd.value == "kurz"

    def test_value_keeps_inner_equals(self):
        cmd = parse("remember: formula = a = b")
        assert cmd.key == "formula"
        assert cmd.value == "a = b"

    @pytest.mark.parametrize(
        "text",
        [
            "merk dir: = nothing",
            "merk dir: tone =",
            "merk dir: tone nothing",
            "merk dir:",
            "tone = short",
            "",
            "   ",
        ],
    )
    def test_rejects(self, text):
        assert parse(text) is None

    def test_non_string(self):
        assert parse(None) is None


class TestIsRememberCommand:
    def test_prefixes(self):
        assert is_remember_command("merk dir: a = b")
        assert is_remember_command("  REMEMBER: whatever")
        assert not is_remember_command("please remember this")
