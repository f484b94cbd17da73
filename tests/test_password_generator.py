"""Tests for password generation and the password policy."""

import pytest

from passvault.config.config_vault import SYMBOLS
from passvault.utils.password_generator import generate_password, validate_password, ask_password
from passvault.utils.password_utils import password_strength
from passvault.vault.errors import InputError


class TestGeneratePassword:
    def test_length(self):
        assert len(generate_password()) == 15

    def test_always_valid(self):
        for _ in range(200):
            assert validate_password(generate_password())

    def test_custom_length(self):
        assert len(generate_password(32)) == 32

    def test_too_short(self):
        with pytest.raises(ValueError):
            generate_password(3)

    def test_unique(self):
        assert len({generate_password() for _ in range(50)}) == 50


class TestValidatePassword:
    @pytest.mark.parametrize("pw", [
        "",
        "Aa1$",                      # too short
        "abcdefghijklmno",           # lower only
        "ABCDEFGHIJKLMN1$",          # no lower
        "abcdefghijklm1$",           # no upper
        "abcdefghijklmN$",           # no digit
        "abcdefghijklmN1",           # no symbol
    ])
    def test_rejected(self, pw):
        assert not validate_password(pw)

    def test_accepted(self):
        assert validate_password("abcdefghijkL1" + SYMBOLS[0] + "x")


class TestAskPassword:
    def test_clipboard_valid(self, clipboard):
        clipboard["value"] = "Xy7?Xy7?Xy7?Xy7?"
        assert ask_password(from_clipboard=True) == "Xy7?Xy7?Xy7?Xy7?"

    def test_clipboard_weak_rejected(self, clipboard):
        clipboard["value"] = "password"
        with pytest.raises(InputError):
            ask_password(from_clipboard=True)

    def test_generated(self):
        assert validate_password(ask_password(generate=True))

    def test_typed_reprompts_on_mismatch(self, answers, capsys):
        answers("Tr0ub4dor&3-horse", "typo", "Tr0ub4dor&3-horse", "Tr0ub4dor&3-horse")
        assert ask_password() == "Tr0ub4dor&3-horse"
        assert "do not match" in capsys.readouterr().out


def test_strength_scores():
    assert password_strength("") == -1
    assert password_strength("password") < 2
    assert password_strength(generate_password()) >= 3
