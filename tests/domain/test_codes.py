from __future__ import annotations

import pytest

from stocktake.domain.codes import CODE_MAX_LENGTH, normalize_code, validate_code


def test_normalize_code_trims_and_blanks_to_none() -> None:
    assert normalize_code("  5449000000996 ") == "5449000000996"
    assert normalize_code("   ") is None
    assert normalize_code(None) is None


@pytest.mark.parametrize(
    "code",
    ["5449000000996", "RAYON-12", "lot #4", "Café du marché", "n°5", "o'clock.v2", "A_B"],
)
def test_validate_code_accepts_supported_characters(code: str) -> None:
    assert validate_code(f" {code} ") == code


@pytest.mark.parametrize("code", [None, "", "   "])
def test_validate_code_requires_a_value(code: str | None) -> None:
    with pytest.raises(ValueError, match="required"):
        validate_code(code)


def test_validate_code_rejects_long_codes() -> None:
    with pytest.raises(ValueError, match=str(CODE_MAX_LENGTH)):
        validate_code("1" * (CODE_MAX_LENGTH + 1))

    assert validate_code("1" * CODE_MAX_LENGTH) == "1" * CODE_MAX_LENGTH


@pytest.mark.parametrize("code", ["12/34", "abc$", "x;DROP", "50%"])
def test_validate_code_rejects_unsupported_characters(code: str) -> None:
    with pytest.raises(ValueError, match="may only contain"):
        validate_code(code)
