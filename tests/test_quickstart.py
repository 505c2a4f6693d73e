"""Test that the quickstart API works for onchain-secrets."""
from __future__ import annotations


def test_quickstart_import() -> None:
    import onchain_secrets

    assert onchain_secrets.__version__ == "0.1.0"


def test_quickstart_darc_grants_owner() -> None:
    from onchain_secrets import Darc, Role, Signer

    owner = Signer.generate()
    darc = Darc.new(owners=[owner.identity])
    assert darc.evaluate(Role.ADMIN, owner.identity)


def test_quickstart_delegated_path() -> None:
    from onchain_secrets import Darc, Role, SignaturePath, Signer, any_of

    member = Signer.generate()
    team = Darc.new(owners=[member.identity])
    documents = Darc(rules={"read": any_of(team.identity)})
    path = SignaturePath(darcs=(documents, team), target=member.identity, role=Role.READER)
    assert path.is_valid()


def test_quickstart_errors_share_a_base() -> None:
    from onchain_secrets import (
        AuthorizationResolutionError,
        ClientStateError,
        CommunicationError,
        CryptoStructureError,
        DarcEvolutionError,
        OnchainSecretsError,
    )

    for error in (
        AuthorizationResolutionError,
        ClientStateError,
        CommunicationError,
        CryptoStructureError,
        DarcEvolutionError,
    ):
        assert issubclass(error, OnchainSecretsError)
    assert issubclass(DarcEvolutionError, AuthorizationResolutionError)


def test_quickstart_example_runs(capsys) -> None:
    import importlib.util
    from pathlib import Path

    path = Path(__file__).resolve().parents[1] / "examples" / "01_quickstart.py"
    module_spec = importlib.util.spec_from_file_location("quickstart_example", path)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    module.main()
    assert "Quickstart complete." in capsys.readouterr().out
