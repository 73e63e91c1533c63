# octra/cli/main.py
"""
CLI for deriving addresses, inspecting balances/history and sending transfers.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from octra.chain.session import WalletSession
from octra.config import WalletConfig
from octra.core.canon import envelope_json
from octra.core.encoding import is_valid_address
from octra.core.errors import InvalidKey, OctraError, ValidationError
from octra.core.types import AccountState, SignedTransaction, TransactionIntent
from octra.crypto.hashing import transaction_digest
from octra.crypto.keys import KeyMaterial
from octra.rpc.client import NodeClient
from octra.storage import SQLiteJournal
from octra.tx.builder import build_transaction, fee_for, from_micro, to_decimal
from octra.verify.verifier import TransactionVerifier

app = typer.Typer(
    name="octra",
    help="Sign and send Octra transfers, inspect balance and history",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


def setup_logging(verbose: bool) -> None:
    log = logging.getLogger("octra")
    if not any(isinstance(h, RichHandler) for h in log.handlers):
        log.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
    log.setLevel(logging.DEBUG if verbose else logging.WARNING)


def make_client(cfg: WalletConfig) -> NodeClient:
    return NodeClient(cfg.rpc_url, timeout=cfg.timeout)


def get_config(ctx: typer.Context) -> WalletConfig:
    return ctx.obj


def load_keys(cfg: WalletConfig) -> KeyMaterial:
    if not cfg.private_key:
        console.print("[red]No private key configured.[/]")
        console.print("[yellow]Provide one of:[/]")
        console.print("  • --key <base64 secret>")
        console.print("  • export OCTRA_PRIVATE_KEY=<base64 secret>")
        console.print("  • a wallet file at ~/.octra/wallet.json with a \"priv\" entry")
        raise typer.Exit(1)
    try:
        return KeyMaterial.from_secret_b64(cfg.private_key)
    except InvalidKey as e:
        console.print(f"[red]{escape(str(e))}[/]")
        raise typer.Exit(1)


@app.callback()
def main(
    ctx: typer.Context,
    rpc: Optional[str] = typer.Option(None, "--rpc", help="RPC node URL (overrides OCTRA_RPC_URL)"),
    key: Optional[str] = typer.Option(None, "--key", help="Base64 private key (overrides OCTRA_PRIVATE_KEY)"),
    wallet: Optional[Path] = typer.Option(None, "--wallet", help="Path to wallet.json"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Per-request timeout in seconds"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Octra wallet engine."""
    setup_logging(verbose)
    ctx.obj = WalletConfig.resolve(rpc_url=rpc, private_key=key, wallet_path=wallet, timeout=timeout)


@app.command()
def keygen():
    """Generate a fresh keypair and print it. Nothing is written to disk."""
    keys = KeyMaterial.generate()
    console.print(f"[bold]address:[/]     {keys.address}")
    console.print(f"[bold]public key:[/]  {keys.public_key_b64()}")
    console.print(f"[bold]private key:[/] {keys.secret_b64()}")
    console.print("[yellow]Store the private key yourself; it cannot be recovered.[/]")
    keys.discard()


@app.command()
def address(ctx: typer.Context):
    """Show the address and public key derived from the configured key."""
    keys = load_keys(get_config(ctx))
    console.print(f"[bold cyan]address:[/] {keys.address}")
    console.print(f"[bold cyan]public:[/]  {keys.public_key_b64()}")
    keys.discard()


@app.command()
def balance(
    ctx: typer.Context,
    staged: bool = typer.Option(False, "--staged", help="Account for transactions still in staging"),
):
    """Fetch balance and nonce from the node."""
    cfg = get_config(ctx)
    keys = load_keys(cfg)

    async def run():
        async with WalletSession(keys=keys, client=make_client(cfg)) as session:
            return session.address, await session.refresh(include_staged=staged)

    try:
        addr, state = asyncio.run(run())
    except OctraError as e:
        console.print(f"[red]Failed to load balance: {escape(str(e))}[/]")
        raise typer.Exit(1)

    console.print(f"[bold cyan]address:[/] {addr}")
    console.print(f"[bold cyan]balance:[/] [green]{state.balance:.6f} oct[/]")
    console.print(f"[bold cyan]nonce:[/]   {state.nonce}")


@app.command()
def history(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", "-n", help="Number of transaction references to fetch"),
):
    """Show reconciled recent transactions, newest first."""
    cfg = get_config(ctx)
    keys = load_keys(cfg)

    async def run():
        async with WalletSession(keys=keys, client=make_client(cfg), history_limit=limit) as session:
            records = await session.history()
            return records, session.reader.last_dropped

    records, dropped = asyncio.run(run())

    if not records:
        console.print("[yellow]No transactions yet.[/]")
        return

    table = Table(title="Recent Transactions")
    table.add_column("Time")
    table.add_column("Type")
    table.add_column("Amount", justify="right")
    table.add_column("Counterparty")
    table.add_column("Status")

    for rec in records:
        kind = "[green] in[/]" if rec.direction == "in" else "[red]out[/]"
        status = "pending" if rec.pending else f"e{rec.epoch}"
        table.add_row(rec.time.strftime("%Y-%m-%d %H:%M:%S"), kind, f"{rec.amount:.6f}", rec.counterparty, status)

    console.print(table)
    if dropped:
        console.print(f"[yellow]{dropped} transaction(s) could not be loaded.[/]")


@app.command()
def send(
    ctx: typer.Context,
    to: str = typer.Argument(..., help="Destination address (oct…)"),
    amount: str = typer.Argument(..., help="Amount in OCT"),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Optional message"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    no_journal: bool = typer.Option(False, "--no-journal", help="Do not record the submission locally"),
):
    """Build, sign and submit a transfer."""
    cfg = get_config(ctx)
    keys = load_keys(cfg)
    intent = TransactionIntent(to=to, amount=amount, message=message)

    if not is_valid_address(to):
        console.print(f"[red]Invalid address format: {to}[/]")
        raise typer.Exit(1)
    try:
        fee = fee_for(amount)
    except ValidationError as e:
        console.print(f"[red]{escape(str(e))}[/]")
        raise typer.Exit(1)

    if not yes:
        typer.confirm(f"Send {to_decimal(amount):.6f} oct to {to} (fee {fee} oct)?", abort=True)

    async def run():
        journal = None if no_journal else str(cfg.journal_path)
        async with WalletSession(keys=keys, client=make_client(cfg), journal=journal) as session:
            return await session.send(intent)

    try:
        result = asyncio.run(run())
    except OctraError as e:
        console.print(f"[red]Failed to get wallet state: {escape(str(e))}[/]")
        raise typer.Exit(1)

    if result.success:
        console.print("[green]✓ Transaction accepted[/]")
        console.print(f"  hash: {result.tx_hash}")
        console.print(f"  time: {result.response_time:.2f}s")
        if result.pool_info:
            console.print(f"  pool: {json.dumps(result.pool_info)}")
    else:
        console.print(f"[red]✗ Transaction failed: {escape(str(result.error))}[/]")
        raise typer.Exit(1)


@app.command()
def sign(
    ctx: typer.Context,
    to: str = typer.Argument(..., help="Destination address (oct…)"),
    amount: str = typer.Argument(..., help="Amount in OCT"),
    nonce: int = typer.Option(..., "--nonce", help="Nonce to use (current account nonce + 1)"),
    message: Optional[str] = typer.Option(None, "--message", "-m"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write envelope to file instead of stdout"),
):
    """Sign a transfer offline and print the /send-tx envelope. Balance is not checked."""
    if nonce < 1:
        console.print("[red]Nonce must be >= 1[/]")
        raise typer.Exit(1)
    keys = load_keys(get_config(ctx))
    try:
        want = to_decimal(amount)
        state = AccountState(balance=want, nonce=nonce - 1)
        unsigned = build_transaction(TransactionIntent(to=to, amount=amount, message=message), state, keys.address)
    except ValidationError as e:
        console.print(f"[red]{escape(str(e))}[/]")
        raise typer.Exit(1)

    body = envelope_json(keys.sign_transaction(unsigned))
    keys.discard()
    if output:
        output.write_text(body + "\n", encoding="utf-8")
        console.print(f"[green]Signed envelope written to {output}[/]")
        console.print(f"  digest: {transaction_digest(unsigned)}")
    else:
        typer.echo(body)


@app.command()
def verify(
    file: Path = typer.Argument(..., help="JSON file holding a signed envelope"),
    sender: Optional[str] = typer.Option(None, "--from", help="Require this sender address"),
):
    """Check an envelope's shape, sender binding and signature offline."""
    try:
        signed = SignedTransaction.from_dict(json.loads(file.read_text(encoding="utf-8")))
    except (OSError, ValueError, KeyError, TypeError) as e:
        console.print(f"[red]Cannot read envelope: {escape(str(e))}[/]")
        raise typer.Exit(1)

    result = TransactionVerifier(expected_address=sender).verify(signed)
    if result.is_valid:
        console.print(f"[green]✓ Envelope from {signed.tx.from_} is valid[/]")
    else:
        console.print("[red]✗ Verification failed[/]")
        for failure in result.failures:
            console.print(escape(f"  • [{failure.field}] {failure.category}: {failure.message}"))
        raise typer.Exit(1)


@app.command()
def journal(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", "-n", help="Number of entries to show"),
):
    """List locally recorded submissions for the configured wallet."""
    cfg = get_config(ctx)
    keys = load_keys(cfg)
    addr = keys.address
    keys.discard()

    if not cfg.journal_path or not cfg.journal_path.exists():
        console.print(f"[yellow]No journal found at {cfg.journal_path}[/]")
        return

    with SQLiteJournal(cfg.journal_path) as store:
        entries = store.load_entries(addr, limit=limit)

    if not entries:
        console.print("[yellow]No submissions recorded for this address.[/]")
        return

    table = Table(title="Submitted Transactions")
    table.add_column("Recorded")
    table.add_column("Nonce", justify="right")
    table.add_column("To")
    table.add_column("Amount", justify="right")
    table.add_column("Result")

    for e in entries:
        amount = from_micro(int(e.envelope.get("amount", 0)))
        outcome = f"[green]{e.result.tx_hash}[/]" if e.result.success else f"[red]{escape(str(e.result.error))}[/]"
        table.add_row(e.recorded_at, str(e.nonce), e.envelope.get("to_", ""), f"{amount:.6f}", outcome)

    console.print(table)


if __name__ == "__main__":
    app()
