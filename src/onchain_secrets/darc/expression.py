"""Rule expressions over identities.

A Darc rule is a boolean expression whose leaves are identities::

    ed25519:<hex> | darc:<hex>
    ed25519:<hex> & (ed25519:<hex> | darc:<hex>)

``&`` binds tighter than ``|``. Evaluation is driven by a predicate that
decides whether a single leaf identity is satisfied; ``&`` needs every
operand satisfied independently, ``|`` needs at least one.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterator, Union

from onchain_secrets.darc.identity import Identity, parse_identity
from onchain_secrets.errors import CryptoStructureError

_TOKEN_RE = re.compile(r"\s*(?:(?P<op>[&|()])|(?P<id>[a-z0-9]+:[0-9a-fA-F]+))")


@dataclass(frozen=True)
class Leaf:
    identity: Identity

    def evaluate(self, predicate: Callable[[Identity], bool]) -> bool:
        return predicate(self.identity)

    def identities(self) -> Iterator[Identity]:
        yield self.identity

    def __str__(self) -> str:
        return str(self.identity)


@dataclass(frozen=True)
class AllOf:
    operands: tuple["Expression", ...]

    def evaluate(self, predicate: Callable[[Identity], bool]) -> bool:
        return all(op.evaluate(predicate) for op in self.operands)

    def identities(self) -> Iterator[Identity]:
        for op in self.operands:
            yield from op.identities()

    def __str__(self) -> str:
        return " & ".join(_wrap(op) for op in self.operands)


@dataclass(frozen=True)
class AnyOf:
    operands: tuple["Expression", ...]

    def evaluate(self, predicate: Callable[[Identity], bool]) -> bool:
        return any(op.evaluate(predicate) for op in self.operands)

    def identities(self) -> Iterator[Identity]:
        for op in self.operands:
            yield from op.identities()

    def __str__(self) -> str:
        return " | ".join(_wrap(op) for op in self.operands)


Expression = Union[Leaf, AllOf, AnyOf]


def _wrap(op: Expression) -> str:
    return f"({op})" if isinstance(op, (AllOf, AnyOf)) else str(op)


# ---------------------------------------------------------------------------
# Construction helpers
# ---------------------------------------------------------------------------


def any_of(*identities: Identity) -> Expression:
    """Build an OR over identities; a single identity becomes a bare leaf."""
    if not identities:
        raise CryptoStructureError("An expression needs at least one identity.")
    leaves = tuple(Leaf(i) for i in identities)
    return leaves[0] if len(leaves) == 1 else AnyOf(leaves)


def all_of(*identities: Identity) -> Expression:
    """Build an AND over identities; a single identity becomes a bare leaf."""
    if not identities:
        raise CryptoStructureError("An expression needs at least one identity.")
    leaves = tuple(Leaf(i) for i in identities)
    return leaves[0] if len(leaves) == 1 else AllOf(leaves)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _tokenize(text: str) -> list[str]:
    tokens: list[str] = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise CryptoStructureError(
                f"Unexpected character {text[pos]!r} at position {pos} in expression."
            )
        tokens.append(match.group("op") or match.group("id"))
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, tokens: list[str]) -> None:
        self._tokens = tokens
        self._pos = 0

    def _peek(self) -> str | None:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _take(self) -> str:
        token = self._peek()
        if token is None:
            raise CryptoStructureError("Unexpected end of expression.")
        self._pos += 1
        return token

    def parse(self) -> Expression:
        expr = self._or()
        if self._peek() is not None:
            raise CryptoStructureError(f"Unexpected token {self._peek()!r} in expression.")
        return expr

    def _or(self) -> Expression:
        operands = [self._and()]
        while self._peek() == "|":
            self._take()
            operands.append(self._and())
        return operands[0] if len(operands) == 1 else AnyOf(tuple(operands))

    def _and(self) -> Expression:
        operands = [self._term()]
        while self._peek() == "&":
            self._take()
            operands.append(self._term())
        return operands[0] if len(operands) == 1 else AllOf(tuple(operands))

    def _term(self) -> Expression:
        token = self._take()
        if token == "(":
            expr = self._or()
            if self._take() != ")":
                raise CryptoStructureError("Unbalanced parentheses in expression.")
            return expr
        if token in ("&", "|", ")"):
            raise CryptoStructureError(f"Unexpected operator {token!r} in expression.")
        return Leaf(parse_identity(token))


def parse_expression(text: str) -> Expression:
    """Parse an expression string.

    Raises
    ------
    CryptoStructureError
        On syntax errors or malformed identities.
    """
    tokens = _tokenize(text)
    if not tokens:
        raise CryptoStructureError("Empty expression.")
    return _Parser(tokens).parse()


__all__ = [
    "AllOf",
    "AnyOf",
    "Expression",
    "Leaf",
    "all_of",
    "any_of",
    "parse_expression",
]
