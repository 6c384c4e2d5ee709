"""Tests for change detection and masking."""

import pytest

from secretpatch.changes import ChangeRecord, changed, count_effective, mask
from secretpatch.tree import Scalar, from_document


class TestChanged:
    """changed() comparison rules."""

    def test_both_null(self) -> None:
        assert changed(None, None) is False

    def test_one_null(self) -> None:
        assert changed("value", None) is True
        assert changed(None, "value") is True

    def test_equal_strings(self) -> None:
        assert changed("abc", "abc") is False

    def test_case_sensitive(self) -> None:
        assert changed("Value", "value") is True

    def test_bool_coerced(self) -> None:
        assert changed(Scalar(True), "true") is False
        assert changed(Scalar(True), "True") is True

    def test_number_coerced(self) -> None:
        assert changed(Scalar(5432), "5432") is False
        assert changed(Scalar(1.5), "1.5") is False

    def test_null_scalar_is_null(self) -> None:
        assert changed(Scalar(None), None) is False
        assert changed(Scalar(None), "x") is True

    def test_object_against_string(self) -> None:
        assert changed(from_document({"a": 1}), '{"a":1}') is False
        assert changed(from_document({"a": 1}), "x") is True


class TestMask:
    """mask() rendering."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, "(null)"),
            ("", "(empty)"),
            ("abc", "****"),
            ("abcd", "****"),
            ("abcde", "ab****de"),
            ("supersecret", "su****et"),
            (Scalar(True), "****"),
        ],
    )
    def test_mask(self, value, expected: str) -> None:
        assert mask(value) == expected


class TestChangeRecord:
    """ChangeRecord descriptions never show raw values."""

    def test_update_description_masked(self) -> None:
        record = ChangeRecord("db.password", Scalar("oldpassword"), "newpassword", True)
        text = record.describe()
        assert "oldpassword" not in text
        assert "newpassword" not in text
        assert "ol****rd" in text and "ne****rd" in text

    def test_add_and_unchanged(self) -> None:
        assert "add" in ChangeRecord("k", None, "value", True).describe()
        assert ChangeRecord("k", Scalar("v"), "v", False).describe() == "k: unchanged"

    def test_removal(self) -> None:
        record = ChangeRecord("k", Scalar("value"), None, True)
        assert record.is_removal
        assert "remove" in record.describe()

    def test_count_effective(self) -> None:
        records = [
            ChangeRecord("a", None, "1", True),
            ChangeRecord("b", Scalar("2"), "2", False),
            ChangeRecord("c", Scalar("x"), None, True),
        ]
        assert count_effective(records) == 2
