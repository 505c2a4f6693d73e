"""CLI entry point for onchain-secrets.

Invoked as::

    onchain-secrets [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m onchain_secrets.cli.main

Commands
--------
keygen          Generate an Ed25519 signing key
darc create     Create a version-0 Darc file
darc show       Display the rules of a Darc file
darc evolve     Sign the next version of a Darc file
roster show     List the servers of a roster file
roster verify   Check every server of a roster
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from onchain_secrets.darc import Darc
    from onchain_secrets.network.roster import Roster

console = Console()


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(package_name="onchain-secrets")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
def cli(log_level: str) -> None:
    """Encrypted documents on a ledger with Darc-based access control"""
    logging.basicConfig(level=getattr(logging, log_level.upper()))


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from onchain_secrets import __version__

    console.print(f"[bold]onchain-secrets[/bold] v{__version__}")


# ------------------------------------------------------------------
# keygen
# ------------------------------------------------------------------


@cli.command(name="keygen")
@click.option(
    "--out",
    "-o",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write the key to this JSON file instead of printing the private key.",
)
def keygen_command(out: str | None) -> None:
    """Generate an Ed25519 signing key."""
    from onchain_secrets.darc.signature import Signer

    signer = Signer.generate()
    record = {"private_key": signer.private_bytes.hex(), "identity": str(signer.identity)}
    if out:
        Path(out).write_text(json.dumps(record, indent=2), encoding="utf-8")
        console.print(f"[green]Wrote[/green] key to {out}")
    else:
        console.print(f"  Private key: {record['private_key']}")
    console.print(f"  Identity:    {record['identity']}")


# ------------------------------------------------------------------
# darc command group
# ------------------------------------------------------------------


@cli.group(name="darc")
def darc_group() -> None:
    """Create and inspect Darcs."""


@darc_group.command(name="create")
@click.option("--owner", "owners", multiple=True, required=True, help="Owner identity (repeatable).")
@click.option("--writer", "writers", multiple=True, help="Writer identity (repeatable).")
@click.option("--reader", "readers", multiple=True, help="Reader identity (repeatable).")
@click.option("--description", "-d", default="", help="Free-text description.")
@click.option("--out", "-o", type=click.Path(dir_okay=False), required=True, help="Output file.")
def darc_create_command(
    owners: tuple[str, ...],
    writers: tuple[str, ...],
    readers: tuple[str, ...],
    description: str,
    out: str,
) -> None:
    """Create a version-0 Darc from identity strings (ed25519:<hex> or darc:<hex>)."""
    from onchain_secrets.darc import Darc, parse_identity
    from onchain_secrets.errors import OnchainSecretsError

    try:
        darc = Darc.new(
            owners=[parse_identity(o) for o in owners],
            writers=[parse_identity(w) for w in writers],
            readers=[parse_identity(r) for r in readers],
            description=description.encode("utf-8"),
        )
    except OnchainSecretsError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    Path(out).write_text(json.dumps(darc.to_dict(), indent=2), encoding="utf-8")
    console.print(f"[green]Created[/green] darc [bold]{darc.id.hex()}[/bold]")
    console.print(f"  Identity: {darc.identity}")


@darc_group.command(name="show")
@click.argument("darc_file", type=click.Path(exists=True, dir_okay=False))
def darc_show_command(darc_file: str) -> None:
    """Display the rules of DARC_FILE."""
    darc = _load_darc(darc_file)

    console.print(f"[bold]Darc[/bold] {darc.id.hex()}")
    console.print(f"  Base:        {darc.base.hex()}")
    console.print(f"  Version:     {darc.version}")
    console.print(f"  Description: {darc.description.decode('utf-8', errors='replace')}")
    if darc.signature is not None:
        console.print(f"  Signed by:   {darc.signature.signer}")

    table = Table(title="Rules", show_header=True)
    table.add_column("Action", style="bold")
    table.add_column("Expression")
    for action in sorted(darc.rules):
        table.add_row(action, str(darc.rules[action]))
    console.print(table)


@darc_group.command(name="evolve")
@click.argument("darc_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--key",
    "key_file",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="JSON key file written by 'keygen --out'.",
)
@click.option(
    "--rule",
    "rules",
    multiple=True,
    help="Replace a rule, as ACTION=EXPRESSION (repeatable).",
)
@click.option("--description", "-d", default=None, help="New description.")
@click.option("--out", "-o", type=click.Path(dir_okay=False), required=True, help="Output file.")
def darc_evolve_command(
    darc_file: str,
    key_file: str,
    rules: tuple[str, ...],
    description: str | None,
    out: str,
) -> None:
    """Sign the next version of DARC_FILE with the key in --key."""
    from onchain_secrets.darc import Signer, parse_expression
    from onchain_secrets.errors import OnchainSecretsError

    darc = _load_darc(darc_file)
    try:
        key_record = json.loads(Path(key_file).read_text(encoding="utf-8"))
        signer = Signer.from_private_bytes(bytes.fromhex(key_record["private_key"]))
        new_rules = dict(darc.rules)
        for item in rules:
            action, sep, expression = item.partition("=")
            if not sep or not action.strip():
                raise click.BadParameter(f"{item!r} is not ACTION=EXPRESSION", param_hint="--rule")
            new_rules[action.strip()] = parse_expression(expression)
        evolved = darc.evolve(
            signer,
            new_rules,
            description=description.encode("utf-8") if description is not None else None,
        )
    except (OnchainSecretsError, KeyError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    Path(out).write_text(json.dumps(evolved.to_dict(), indent=2), encoding="utf-8")
    console.print(f"[green]Evolved[/green] darc to version {evolved.version}: {evolved.id.hex()}")


# ------------------------------------------------------------------
# roster command group
# ------------------------------------------------------------------


@cli.group(name="roster")
def roster_group() -> None:
    """Inspect and check server rosters."""


@roster_group.command(name="show")
@click.argument("roster_file", type=click.Path(exists=True, dir_okay=False))
def roster_show_command(roster_file: str) -> None:
    """List the servers in ROSTER_FILE (TOML or JSON)."""
    roster = _load_roster(roster_file)

    table = Table(title=f"Roster ({len(roster)} servers)", show_header=True)
    table.add_column("#", justify="right")
    table.add_column("Address", style="bold")
    table.add_column("Description")
    table.add_column("Public key")
    for index, node in enumerate(roster):
        table.add_row(str(index), node.address, node.description, node.public[:16])
    console.print(table)


@roster_group.command(name="verify")
@click.argument("roster_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--timeout",
    type=float,
    default=5.0,
    show_default=True,
    help="Per-server timeout in seconds.",
)
def roster_verify_command(roster_file: str, timeout: float) -> None:
    """Check every server in ROSTER_FILE and report which are healthy."""
    from onchain_secrets.client import ClientConfig, OnchainSecretsClient
    from onchain_secrets.network.transport import HttpTransport

    roster = _load_roster(roster_file)
    client = OnchainSecretsClient(
        roster, HttpTransport(), ClientConfig(verify_timeout_seconds=timeout)
    )
    statuses = client.verify_nodes()

    for status in statuses:
        if status.healthy:
            console.print(f"  [green]PASS[/green]  {status.server.address}")
        else:
            console.print(f"  [red]FAIL[/red]  {status.server.address}: {status.error}")

    if not all(s.healthy for s in statuses):
        sys.exit(1)
    console.print(f"\n[green]All {len(statuses)} servers are healthy.[/green]")


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _load_darc(path: str) -> Darc:
    from onchain_secrets.darc import Darc
    from onchain_secrets.errors import OnchainSecretsError

    try:
        return Darc.from_dict(json.loads(Path(path).read_text(encoding="utf-8")))
    except (json.JSONDecodeError, OnchainSecretsError) as exc:
        console.print(f"[red]Error:[/red] could not read darc from {path}: {exc}")
        sys.exit(1)


def _load_roster(path: str) -> Roster:
    from onchain_secrets.network.roster import Roster

    try:
        return Roster.load(path)
    except ValueError as exc:
        console.print(f"[red]Error:[/red] could not read roster from {path}: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    cli()
