"""Tests for onchain_secrets.darc.resolver — path discovery and local validation."""
from __future__ import annotations

from typing import Sequence

import pytest

from onchain_secrets.darc.darc import Darc, Role
from onchain_secrets.darc.expression import any_of
from onchain_secrets.darc.identity import Identity
from onchain_secrets.darc.ids import DarcId
from onchain_secrets.darc.resolver import DarcResolver
from onchain_secrets.darc.signature import SignaturePath, Signer
from onchain_secrets.errors import AuthorizationResolutionError, DarcEvolutionError


class ScriptedFetcher:
    """Returns a fixed candidate path and records every query."""

    def __init__(self, darcs: Sequence[Darc]) -> None:
        self.darcs = list(darcs)
        self.queries: list[tuple[DarcId, Identity, Role]] = []

    def __call__(self, base_id: DarcId, target: Identity, role: Role) -> list[Darc]:
        self.queries.append((base_id, target, role))
        return self.darcs


@pytest.fixture()
def member() -> Signer:
    return Signer.generate()


@pytest.fixture()
def group(member: Signer) -> Darc:
    return Darc.new(owners=[member.identity], description=b"group")


@pytest.fixture()
def base(group: Darc) -> Darc:
    return Darc(rules={"read": any_of(group.identity)}, description=b"base")


class TestResolve:
    def test_returns_validated_path(self, base: Darc, group: Darc, member: Signer) -> None:
        fetch = ScriptedFetcher([base, group])
        path = DarcResolver(fetch).resolve(base.id, member.identity, Role.READER)
        assert path.darcs == (base, group)
        assert path.target == member.identity
        assert fetch.queries == [(base.id, member.identity, Role.READER)]

    def test_empty_path_raises(self, base: Darc, member: Signer) -> None:
        resolver = DarcResolver(ScriptedFetcher([]))
        with pytest.raises(AuthorizationResolutionError, match="empty"):
            resolver.resolve(base.id, member.identity, Role.READER)

    def test_path_from_other_base_raises(self, base: Darc, group: Darc, member: Signer) -> None:
        resolver = DarcResolver(ScriptedFetcher([group]))
        with pytest.raises(AuthorizationResolutionError, match="expected"):
            resolver.resolve(base.id, member.identity, Role.READER)

    def test_invalid_path_is_not_repaired(self, base: Darc, group: Darc) -> None:
        stranger = Signer.generate()
        fetch = ScriptedFetcher([base, group])
        with pytest.raises(AuthorizationResolutionError):
            DarcResolver(fetch).resolve(base.id, stranger.identity, Role.READER)
        assert len(fetch.queries) == 1

    def test_cyclic_path_raises(self, member: Signer) -> None:
        darc = Darc.new(owners=[member.identity])
        looping = darc.evolve(member, {**darc.rules, "read": any_of(darc.identity)})
        resolver = DarcResolver(ScriptedFetcher([looping, looping]))
        with pytest.raises(AuthorizationResolutionError, match="revisits"):
            resolver.resolve(darc.id, member.identity, Role.READER)

    def test_direct_writer_is_not_an_admin(self, member: Signer) -> None:
        owner = Signer.generate()
        darc = Darc.new(owners=[owner.identity], writers=[member.identity])
        fetch = ScriptedFetcher([darc])
        path = DarcResolver(fetch).resolve(darc.id, member.identity, Role.WRITER)
        assert path.darcs == (darc,)
        assert path.target == member.identity
        with pytest.raises(DarcEvolutionError):
            darc.evolve(member)
        assert len(fetch.queries) == 1

    def test_base_may_be_named_by_base_id(self, group: Darc, member: Signer) -> None:
        newer = group.evolve(member, description=b"v1")
        path = DarcResolver(ScriptedFetcher([newer])).resolve(group.id, member.identity, Role.READER)
        assert path.base is newer


class TestValidate:
    def test_validate_without_base(self, base: Darc, group: Darc, member: Signer) -> None:
        path = SignaturePath(darcs=(base, group), target=member.identity, role=Role.READER)
        DarcResolver.validate(path)

    def test_validate_rejects_wrong_base(self, base: Darc, group: Darc, member: Signer) -> None:
        path = SignaturePath(darcs=(group,), target=member.identity, role=Role.READER)
        with pytest.raises(AuthorizationResolutionError):
            DarcResolver.validate(path, base_id=base.id)
