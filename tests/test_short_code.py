# tests/test_short_code.py
from cartshare.domain.short_code import (
    ALPHABET,
    CODE_LENGTH,
    generate_short_code,
    is_valid_short_code,
    normalize_short_code,
)


def test_generated_codes_use_unambiguous_alphabet():
    for _ in range(200):
        code = generate_short_code()
        assert len(code) == CODE_LENGTH == 7
        assert set(code) <= set(ALPHABET)

    assert not set("IO01") & set(ALPHABET)
    assert len(ALPHABET) == 32


def test_lookup_normalization_accepts_any_casing():
    assert normalize_short_code("  abcdefg ") == "ABCDEFG"
    assert is_valid_short_code("abc2def")
    assert is_valid_short_code(" ABC2DEF ")


def test_invalid_codes_are_rejected():
    assert not is_valid_short_code("ABCDEF")
    assert not is_valid_short_code("ABCDEFGH")
    assert not is_valid_short_code("ABCDEF0")
    assert not is_valid_short_code("ABC-DEF")
    assert not is_valid_short_code("")
