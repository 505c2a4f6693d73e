"""Tests for onchain_secrets.darc.ids — fixed-length ledger identifiers."""
from __future__ import annotations

import pytest

from onchain_secrets.darc.ids import DarcId, ReadRequestId, SkipblockId, WriteRequestId
from onchain_secrets.errors import CryptoStructureError


class TestConstruction:
    def test_accepts_32_bytes(self) -> None:
        assert DarcId(b"\x01" * 32).raw == b"\x01" * 32

    @pytest.mark.parametrize("length", [0, 31, 33, 64])
    def test_wrong_length_raises(self, length: int) -> None:
        with pytest.raises(CryptoStructureError, match="32 bytes"):
            SkipblockId(b"\x00" * length)

    def test_non_bytes_raises(self) -> None:
        with pytest.raises(CryptoStructureError):
            DarcId("ab" * 32)  # type: ignore[arg-type]

    def test_from_hex_round_trip(self) -> None:
        original = DarcId.random()
        assert DarcId.from_hex(original.hex()) == original

    def test_from_hex_invalid_raises(self) -> None:
        with pytest.raises(CryptoStructureError, match="Invalid hex"):
            DarcId.from_hex("zz" * 32)

    def test_is_immutable(self) -> None:
        ident = DarcId.random()
        with pytest.raises(AttributeError):
            ident._raw = b"\x00" * 32  # type: ignore[misc]


class TestEquality:
    def test_byte_exact_equality(self) -> None:
        assert DarcId(b"\x02" * 32) == DarcId(b"\x02" * 32)
        assert DarcId(b"\x02" * 32) != DarcId(b"\x03" * 32)

    def test_block_ids_share_a_family(self) -> None:
        raw = b"\x04" * 32
        assert WriteRequestId(raw) == SkipblockId(raw)
        assert {SkipblockId(raw): "block"}[ReadRequestId(raw)] == "block"

    def test_darc_id_never_equals_block_id(self) -> None:
        raw = b"\x05" * 32
        assert DarcId(raw) != SkipblockId(raw)

    def test_str_is_hex(self) -> None:
        assert str(DarcId(b"\xab" * 32)) == "ab" * 32
