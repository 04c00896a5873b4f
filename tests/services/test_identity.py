"""Tests for name and project-code normalization."""

import pytest

from essay_arena.core.identity import normalize_project_code, normalize_user_name, pair_key


@pytest.mark.parametrize(
    "raw",
    ["Jane Doe", " jane doe ", "JANE   DOE", "jane\tdoe", "Jane\u00a0Doe"],
)
def test_user_name_variants_share_one_key(raw: str) -> None:
    assert normalize_user_name(raw) == "jane doe"


def test_blank_user_name_normalizes_to_empty() -> None:
    assert normalize_user_name("   ") == ""


def test_casefold_handles_non_ascii() -> None:
    assert normalize_user_name("STRASSE") == normalize_user_name("straße")


def test_project_code_is_upper_cased_without_whitespace() -> None:
    assert normalize_project_code(" ab c1 ") == "ABC1"


def test_pair_key_is_symmetric() -> None:
    assert pair_key("alice", "bob") == pair_key("bob", "alice")
    assert pair_key("alice", "bob") != pair_key("alice", "carol")


@pytest.mark.parametrize("raw", ["  Mixed   Case\tName ", "ALREADY", "", "ß"])
def test_normalizers_are_idempotent(raw: str) -> None:
    once = normalize_user_name(raw)
    assert normalize_user_name(once) == once
    code = normalize_project_code(raw)
    assert normalize_project_code(code) == code
