"""Typer-based CLI for artprov."""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import codec
from .config import ArtProvConfig
from .disclosure import DisclosureGate, Ed25519Signer
from .errors import ArtProvError
from .ledger import RecordLedger, validate_submission
from .models.disclosure import SessionParams
from .models.record import ArtRecord, RecordStatus
from .store import FileStore
from .views import search, summarize

app = typer.Typer(
    name="artprov",
    help="artprov - confidential art provenance records on a shared key/value ledger",
    add_completion=False,
)

console = Console()

STATUS_STYLES = {
    RecordStatus.PENDING: "yellow",
    RecordStatus.VERIFIED: "green",
    RecordStatus.REJECTED: "red",
}


@app.callback()
def main(
    ctx: typer.Context,
    store_path: str = typer.Option(
        None,
        "--store",
        "-s",
        help="Path to the store file (default: ARTPROV_STORE_PATH env or ./.artprov/store.json)",
    ),
    key_path: str = typer.Option(
        None,
        "--key",
        "-k",
        help="Path to the Ed25519 signing key (default: ARTPROV_KEY_PATH env or ./.artprov/signing_key.pem)",
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """Register, review and annotate artwork provenance records."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    try:
        ctx.obj = ArtProvConfig.from_env(cli_store_path=store_path, cli_key_path=key_path)
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(code=1)


def _ledger(config: ArtProvConfig) -> RecordLedger:
    return RecordLedger(
        FileStore(config.store_path),
        index_key=config.index_key,
        record_prefix=config.record_prefix,
    )


def _signer(config: ArtProvConfig) -> Ed25519Signer:
    if not config.key_path.exists():
        console.print(f"[red]Error: No signing key at {config.key_path}[/red]")
        console.print("[yellow]Run 'artprov init' first[/yellow]")
        raise typer.Exit(code=1)
    return Ed25519Signer.from_file(config.key_path)


def _load_record(config: ArtProvConfig, record_id: str) -> ArtRecord:
    try:
        return asyncio.run(_ledger(config).get(record_id))
    except ArtProvError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


def _require_owner(record: ArtRecord, signer: Ed25519Signer) -> None:
    if not record.is_owned_by(signer.address):
        console.print(f"[red]Error: Only the owner ({record.owner}) can change this record[/red]")
        raise typer.Exit(code=1)


def _format_ts(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


@app.command()
def init(
    ctx: typer.Context,
    write_config: bool = typer.Option(
        False,
        "--write-config",
        help="Also write .artprov/config.toml in the current directory",
    ),
):
    """Create the local store file and signing key.

    This command is idempotent - it will not overwrite existing data.
    """
    config: ArtProvConfig = ctx.obj

    store = FileStore(config.store_path)
    if store.initialize():
        console.print(f"[green]+[/green] Created store: {config.store_path}")
    else:
        console.print(f"[dim]Store already exists: {config.store_path}[/dim]")

    if not config.key_path.exists():
        signer = Ed25519Signer.generate()
        signer.save(config.key_path)
        console.print(f"[green]+[/green] Created signing key: {config.key_path}")
    else:
        signer = Ed25519Signer.from_file(config.key_path)
        console.print(f"[dim]Signing key already exists: {config.key_path}[/dim]")

    if write_config:
        config_file = Path.cwd() / ".artprov" / "config.toml"
        if not config_file.exists():
            config_file.parent.mkdir(parents=True, exist_ok=True)
            config_file.write_text(config.to_toml_str())
            console.print(f"[green]+[/green] Created config: {config_file}")
        else:
            console.print(f"[dim]Config already exists: {config_file}[/dim]")

    console.print(f"Account address: [cyan]{signer.address}[/cyan]")


@app.command()
def add(
    ctx: typer.Context,
    title: str = typer.Option(..., "--title", "-t", help="Artwork title"),
    creator: str = typer.Option(..., "--artist", "-a", help="Artist name"),
    price: float = typer.Option(..., "--price", "-p", help="Last sale price (kept confidential)"),
    note: str = typer.Option("", "--note", "-n", help="Initial provenance note"),
):
    """Register a new artwork record with a confidential price."""
    config: ArtProvConfig = ctx.obj
    signer = _signer(config)
    try:
        validate_submission(title, creator, price, signer.address)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    try:
        record_id = asyncio.run(_ledger(config).create(title, creator, price, note, signer.address))
    except ArtProvError as e:
        console.print(f"[red]Submission failed: {e}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]+[/green] Registered artwork [bold]{title}[/bold] as {record_id}")


@app.command("list")
def list_cmd(
    ctx: typer.Context,
    term: str = typer.Option("", "--search", "-q", help="Filter by title or artist"),
):
    """List artwork records, newest first."""
    config: ArtProvConfig = ctx.obj
    records = asyncio.run(_ledger(config).list_records())
    records = search(records, term)

    if not records:
        console.print("[dim]No artwork records[/dim]")
        return

    table = Table(title=f"{len(records)} Artwork Record(s)")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Artist")
    table.add_column("Owner", style="dim")
    table.add_column("Created (UTC)", no_wrap=True)
    table.add_column("Status")

    for record in records:
        style = STATUS_STYLES[record.status]
        owner = record.owner[:6] + "..." + record.owner[-4:]
        table.add_row(
            record.id,
            record.title,
            record.creator,
            owner,
            _format_ts(record.created_at),
            f"[{style}]{record.status.value}[/{style}]",
        )

    console.print(table)


@app.command()
def show(
    ctx: typer.Context,
    record_id: str = typer.Argument(..., help="Record id"),
):
    """Show one record with its provenance timeline."""
    config: ArtProvConfig = ctx.obj
    record = _load_record(config, record_id)
    style = STATUS_STYLES[record.status]

    console.print(f"[bold]{record.title}[/bold] by {record.creator}")
    console.print(f"  [dim]ID:[/dim]       {record.id}")
    console.print(f"  [dim]Owner:[/dim]    {record.owner}")
    console.print(f"  [dim]Created:[/dim]  {_format_ts(record.created_at)} UTC")
    console.print(f"  [dim]Status:[/dim]   [{style}]{record.status.value}[/{style}]")
    price_label = "encrypted" if codec.is_encoded(record.encoded_price) else "legacy plain value"
    console.print(f"  [dim]Price:[/dim]    {record.encoded_price[:24]}... ({price_label})")
    console.print("  [dim]Provenance:[/dim]")
    if not record.provenance:
        console.print("    [dim](none)[/dim]")
    for i, entry in enumerate(record.provenance, 1):
        console.print(f"    {i}. {entry}")


def _change_status(config: ArtProvConfig, record_id: str, status: RecordStatus) -> None:
    signer = _signer(config)
    record = _load_record(config, record_id)
    _require_owner(record, signer)
    try:
        asyncio.run(_ledger(config).set_status(record_id, status, signer.address))
    except ArtProvError as e:
        console.print(f"[red]Status change failed: {e}[/red]")
        raise typer.Exit(code=1)
    style = STATUS_STYLES[status]
    console.print(f"[{style}]Record {record_id} {status.value}[/{style}]")


@app.command()
def verify(
    ctx: typer.Context,
    record_id: str = typer.Argument(..., help="Record id"),
):
    """Mark a pending record as verified (owner only)."""
    _change_status(ctx.obj, record_id, RecordStatus.VERIFIED)


@app.command()
def reject(
    ctx: typer.Context,
    record_id: str = typer.Argument(..., help="Record id"),
):
    """Mark a pending record as rejected (owner only)."""
    _change_status(ctx.obj, record_id, RecordStatus.REJECTED)


@app.command()
def note(
    ctx: typer.Context,
    record_id: str = typer.Argument(..., help="Record id"),
    text: str = typer.Argument(..., help="Provenance note to append"),
):
    """Append a provenance note to a record (owner only)."""
    config: ArtProvConfig = ctx.obj
    if not text.strip():
        console.print("[red]Error: Note text is required[/red]")
        raise typer.Exit(code=1)
    signer = _signer(config)
    record = _load_record(config, record_id)
    _require_owner(record, signer)
    try:
        updated = asyncio.run(_ledger(config).append_note(record_id, text, signer.address))
    except ArtProvError as e:
        console.print(f"[red]Failed to add note: {e}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]+[/green] Provenance note {len(updated.provenance)} added to {record_id}")


@app.command()
def reveal(
    ctx: typer.Context,
    record_id: str = typer.Argument(..., help="Record id"),
):
    """Sign the disclosure challenge and reveal a record's price."""
    config: ArtProvConfig = ctx.obj
    signer = _signer(config)
    record = _load_record(config, record_id)

    async def _reveal() -> float:
        store = FileStore(config.store_path)
        params = SessionParams.generate(
            contract_address=await store.get_address(),
            chain_id=config.chain_id,
            duration_days=config.duration_days,
        )
        return await DisclosureGate(params).request_reveal(record.encoded_price, signer)

    try:
        price = asyncio.run(_reveal())
    except ArtProvError as e:
        console.print(f"[red]Decryption failed: {e}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[bold]{record.title}[/bold] last sale price: [green]{price:,}[/green]")


@app.command()
def stats(ctx: typer.Context):
    """Show record counts by status."""
    config: ArtProvConfig = ctx.obj
    summary = summarize(asyncio.run(_ledger(config).list_records()))

    table = Table(title="Artwork Records")
    table.add_column("Status")
    table.add_column("Count", justify="right")
    table.add_row("Total", str(summary.total))
    table.add_row("[yellow]Pending[/yellow]", str(summary.pending))
    table.add_row("[green]Verified[/green]", str(summary.verified))
    table.add_row("[red]Rejected[/red]", str(summary.rejected))
    console.print(table)


if __name__ == "__main__":
    app()
