"""Command-line interface for onchain-secrets."""
from __future__ import annotations

from onchain_secrets.cli.main import cli

__all__ = ["cli"]
