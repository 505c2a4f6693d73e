"""Tests for onchain_secrets.darc.expression — rule expressions."""
from __future__ import annotations

import pytest

from onchain_secrets.darc.expression import AllOf, AnyOf, Leaf, all_of, any_of, parse_expression
from onchain_secrets.darc.identity import PublicKeyIdentity
from onchain_secrets.darc.signature import Signer
from onchain_secrets.errors import CryptoStructureError


@pytest.fixture()
def keys() -> list[PublicKeyIdentity]:
    return [Signer.generate().identity for _ in range(3)]


def holds(*present: PublicKeyIdentity):
    return lambda leaf: any(leaf.satisfied_by(p) for p in present)


class TestEvaluation:
    def test_leaf(self, keys: list[PublicKeyIdentity]) -> None:
        assert Leaf(keys[0]).evaluate(holds(keys[0]))
        assert not Leaf(keys[0]).evaluate(holds(keys[1]))

    def test_or_needs_one(self, keys: list[PublicKeyIdentity]) -> None:
        expr = any_of(keys[0], keys[1])
        assert expr.evaluate(holds(keys[1]))
        assert not expr.evaluate(holds(keys[2]))

    def test_and_needs_every_operand(self, keys: list[PublicKeyIdentity]) -> None:
        expr = all_of(keys[0], keys[1])
        assert not expr.evaluate(holds(keys[0]))
        assert expr.evaluate(holds(keys[0], keys[1]))

    def test_single_identity_helpers_return_leaf(self, keys: list[PublicKeyIdentity]) -> None:
        assert isinstance(any_of(keys[0]), Leaf)
        assert isinstance(all_of(keys[0]), Leaf)

    def test_empty_helpers_raise(self) -> None:
        with pytest.raises(CryptoStructureError):
            any_of()

    def test_identities_lists_every_leaf(self, keys: list[PublicKeyIdentity]) -> None:
        expr = AnyOf((Leaf(keys[0]), AllOf((Leaf(keys[1]), Leaf(keys[2])))))
        assert list(expr.identities()) == keys


class TestParsing:
    def test_parse_single(self, keys: list[PublicKeyIdentity]) -> None:
        assert parse_expression(str(keys[0])) == Leaf(keys[0])

    def test_and_binds_tighter_than_or(self, keys: list[PublicKeyIdentity]) -> None:
        a, b, c = (str(k) for k in keys)
        expr = parse_expression(f"{a} | {b} & {c}")
        assert isinstance(expr, AnyOf)
        assert isinstance(expr.operands[1], AllOf)

    def test_parentheses_group(self, keys: list[PublicKeyIdentity]) -> None:
        a, b, c = (str(k) for k in keys)
        expr = parse_expression(f"({a} | {b}) & {c}")
        assert isinstance(expr, AllOf)
        assert expr.evaluate(holds(keys[1], keys[2]))
        assert not expr.evaluate(holds(keys[0], keys[1]))

    def test_str_round_trips(self, keys: list[PublicKeyIdentity]) -> None:
        a, b, c = (str(k) for k in keys)
        expr = parse_expression(f"{a} & ({b} | {c})")
        assert parse_expression(str(expr)) == expr

    @pytest.mark.parametrize("text", ["", "&", "(", "ed25519:00 |", "darc:00) "])
    def test_malformed_raises(self, text: str) -> None:
        with pytest.raises(CryptoStructureError):
            parse_expression(text)

    def test_unbalanced_parentheses_raise(self, keys: list[PublicKeyIdentity]) -> None:
        with pytest.raises(CryptoStructureError):
            parse_expression(f"({keys[0]} | {keys[1]}")
