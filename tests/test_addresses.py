"""
Tests for address helpers.

Covers:
- split_address with and without tags
- is_ripple_address: tag bounds, tag 0, leading zeros, bad characters
- is_positive_integer and is_uuid
"""

import pytest

from ripple_api.addresses import (
    MAX_TAG,
    SplitAddress,
    is_positive_integer,
    is_ripple_address,
    is_uuid,
    split_address,
)

ADDR = "rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh"


class TestSplitAddress:
    def test_plain_address(self) -> None:
        assert split_address(ADDR) == SplitAddress(address=ADDR, tag=None)

    def test_tagged_address(self) -> None:
        assert split_address(f"{ADDR}+12345") == SplitAddress(address=ADDR, tag=12345)

    def test_tag_zero_is_kept(self) -> None:
        assert split_address(f"{ADDR}+0").tag == 0


class TestIsRippleAddress:
    def test_plain_address_is_valid(self) -> None:
        assert is_ripple_address(ADDR) is True

    def test_max_tag_is_valid(self) -> None:
        assert is_ripple_address(f"{ADDR}+{MAX_TAG}") is True

    def test_tag_zero_is_valid(self) -> None:
        assert is_ripple_address(f"{ADDR}+0") is True

    def test_tag_above_uint32_is_invalid(self) -> None:
        assert is_ripple_address(f"{ADDR}+{MAX_TAG + 1}") is False

    @pytest.mark.parametrize("tag", ["012", "-1", "abc", "", "1.5"])
    def test_malformed_tag_is_invalid(self, tag: str) -> None:
        assert is_ripple_address(f"{ADDR}+{tag}") is False

    def test_two_separators_is_invalid(self) -> None:
        assert is_ripple_address(f"{ADDR}+1+2") is False

    @pytest.mark.parametrize(
        "value",
        [
            "",
            None,
            "xHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh",  # wrong prefix
            "rHb9CJAWyB4rj91VRWn96DkukG4bwdty0h",  # '0' is not in the alphabet
            "rShort",
            f"{ADDR}/",
            f"{ADDR}\n",
        ],
    )
    def test_invalid_values(self, value: str | None) -> None:
        assert is_ripple_address(value) is False


class TestIsPositiveInteger:
    @pytest.mark.parametrize("value", [1, "1", "1000000", 2**62])
    def test_positive(self, value: int | str) -> None:
        assert is_positive_integer(value) is True

    @pytest.mark.parametrize("value", [0, -5, "0", "-5", "007", "1.5", "abc", "", None, True])
    def test_not_positive(self, value: object) -> None:
        assert is_positive_integer(value) is False  # type: ignore[arg-type]


class TestIsUuid:
    def test_uuid(self) -> None:
        assert is_uuid("8d2f6a34-0a5b-4a38-9b1f-3f7f2f5b7c10") is True

    @pytest.mark.parametrize("value", ["", None, "not-a-uuid", "8d2f6a34"])
    def test_not_uuid(self, value: str | None) -> None:
        assert is_uuid(value) is False
