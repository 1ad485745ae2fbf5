# ledgertx/cli/main.py
"""
CLI for building and checking onboarding transactions.
Transactions go to stdout; nothing is written to disk.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.markup import escape

from ledgertx.core.types import DEFAULT_NAMESPACE, DEFAULT_SELF_ALIAS
from ledgertx.crypto.keys import DEFAULT_ALGORITHM
from ledgertx.errors import TxBuilderError
from ledgertx.onboard.builder import build_with_generated_key, build_with_provided_key
from ledgertx.verify.verifier import TransactionVerifier

app = typer.Typer(
    name="ledgertx",
    help="Build and verify signed onboarding transactions",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


def resolve_namespace(flag: Optional[str] = None) -> str:
    """Namespace in this order:
    1. --namespace flag
    2. LEDGERTX_NAMESPACE environment variable
    3. Default: "default"
    """
    return flag or os.environ.get("LEDGERTX_NAMESPACE") or DEFAULT_NAMESPACE


def resolve_algorithm(flag: Optional[str] = None) -> str:
    """Algorithm tag: --algorithm flag, then LEDGERTX_ALGORITHM, then secp256k1."""
    return flag or os.environ.get("LEDGERTX_ALGORITHM") or DEFAULT_ALGORITHM.value


def parse_meta(pairs: List[str]) -> Dict[str, str]:
    metadata = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got '{pair}'", param_hint="--meta")
        metadata[key] = value
    return metadata


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log build steps to stderr"),
):
    """Onboarding transaction helper."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr,
                            format="%(levelname)s %(name)s: %(message)s")


@app.command()
def onboard(
    namespace: Optional[str] = typer.Option(None, "--namespace", help="Ledger namespace (env: LEDGERTX_NAMESPACE)"),
    algorithm: Optional[str] = typer.Option(None, "--algorithm", "-a", help="secp256k1, rsa or ed25519 (env: LEDGERTX_ALGORITHM)"),
    alias: str = typer.Option(DEFAULT_SELF_ALIAS, "--alias", help="Input stream alias of the new identity"),
    key: Optional[Path] = typer.Option(None, "--key", "-k", help="Existing private key (PEM/DER) to onboard"),
    meta: List[str] = typer.Option([], "--meta", "-m", help="Transaction metadata as key=value"),
    outputs: List[str] = typer.Option([], "--output-stream", "-o", help="Output stream alias"),
    show_key: bool = typer.Option(False, "--show-key", help="Print the generated private key PEM"),
):
    """Build and print a signed onboarding transaction."""
    namespace = resolve_namespace(namespace)
    algorithm = resolve_algorithm(algorithm)
    metadata = parse_meta(meta)

    if key is not None and not key.exists():
        console.print(f"[red]Key file not found: {escape(str(key))}[/]")
        raise typer.Exit(1)

    try:
        if key is not None:
            signed = build_with_provided_key(namespace, key.read_bytes(), algorithm, outputs, metadata, alias)
            key_pair = None
        else:
            signed, key_pair = build_with_generated_key(namespace, algorithm, outputs, metadata, alias)
    except (TxBuilderError, ValueError, TypeError) as e:
        console.print(f"[red]Failed to build transaction: {escape(str(e))}[/]")
        raise typer.Exit(1)

    typer.echo(signed.to_json())

    if key_pair is not None and show_key:
        typer.echo(key_pair.private_pem(), err=True)


@app.command()
def verify(
    source: str = typer.Argument(..., help="Transaction JSON file, or '-' for stdin"),
):
    """Verify the signature of an onboarding transaction."""
    if source == "-":
        data = sys.stdin.read()
    else:
        path = Path(source)
        if not path.exists():
            console.print(f"[red]File not found: {escape(source)}[/]")
            raise typer.Exit(1)
        data = path.read_text(encoding="utf-8")

    result = TransactionVerifier().verify(data)

    if result.is_valid:
        console.print("[green]✓ Transaction is valid[/]")
        console.print(f"  {result.message}")
    else:
        console.print("[red]✗ Verification failed[/]")
        for failure in result.failures:
            console.print(f"  • {failure.category}: {escape(failure.message)}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
