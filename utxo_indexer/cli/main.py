"""
UTXO Indexer - Command Line Interface
=======================================
CLI per operatori: server API, ingest, query e rollback.

Last Updated: 2026-10-18
Version: 1.0.0

Commands:
- serve: Avvia API REST
- ingest: Ingest blocchi da file JSON
- balance / utxos: Query address
- height / status / block: Query ledger
- rollback: Rollback del tip
- version: Versione e build info
"""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Internal imports
from utxo_indexer.config import IndexerSettings
from utxo_indexer.errors import IndexerException
from utxo_indexer.logging_setup import setup_logging
from utxo_indexer.services.indexer_service import IndexerService
from utxo_indexer.version import get_build_info


# ============================================================================
# CLI APP
# ============================================================================

app = typer.Typer(
    name="utxo-indexer",
    help="UTXO Indexer - ledger indexer CLI",
    add_completion=False
)

console = Console()


# ============================================================================
# GLOBAL STATE
# ============================================================================

class CLIState:
    """Global CLI state"""
    config: Optional[IndexerSettings] = None
    indexer: Optional[IndexerService] = None


state = CLIState()


def _get_indexer() -> IndexerService:
    """Apre il ledger al primo uso"""
    if state.indexer is None:
        try:
            state.indexer = IndexerService.from_settings(state.config)
        except IndexerException as e:
            console.print(f"[red]Cannot open ledger: {e.message}[/red]")
            raise typer.Exit(1)
    return state.indexer


def _close_indexer() -> None:
    if state.indexer is not None:
        state.indexer.close()
        state.indexer = None


# ============================================================================
# SERVER
# ============================================================================

@app.command("serve")
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind host (default: config)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port (default: config)")
):
    """Avvia API REST"""
    import uvicorn
    from utxo_indexer.api.rest_api import create_app

    config = state.config
    indexer = _get_indexer()

    bind_host = host or config.api_host
    bind_port = port or config.api_port

    console.print(Panel.fit(
        f"[green]UTXO Indexer API[/green]\n\n"
        f"Listening: [cyan]http://{bind_host}:{bind_port}[/cyan]\n"
        f"Database: [cyan]{config.db_path}[/cyan]\n"
        f"Height: [cyan]{indexer.get_current_height()}[/cyan]",
        title="Server",
        border_style="green"
    ))

    uvicorn.run(
        create_app(indexer),
        host=bind_host,
        port=bind_port,
        log_level=config.log_level.lower()
    )


# ============================================================================
# INGEST
# ============================================================================

@app.command("ingest")
def ingest(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="File JSON: un blocco o una lista di blocchi")
):
    """Ingest blocchi da file"""
    try:
        payload = json.loads(file.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        console.print(f"[red]Cannot read {file}: {e}[/red]")
        raise typer.Exit(1)

    blocks = payload if isinstance(payload, list) else [payload]
    indexer = _get_indexer()

    applied = 0
    for position, raw_block in enumerate(blocks):
        result = indexer.process_block(raw_block)

        if not result.success:
            console.print(
                f"[red]Block {position} rejected ({result.code}): {result.error}[/red]"
            )
            console.print(f"Applied {applied} of {len(blocks)} blocks")
            raise typer.Exit(1)

        applied += 1

    console.print(
        f"[green]✅ Applied {applied} block(s)[/green] "
        f"- height [cyan]{indexer.get_current_height()}[/cyan]"
    )


# ============================================================================
# QUERIES
# ============================================================================

@app.command("balance")
def balance(address: str = typer.Argument(..., help="Address")):
    """Balance corrente di un address"""
    try:
        value = _get_indexer().get_balance(address)
    except IndexerException as e:
        console.print(f"[red]Error querying balance: {e.message}[/red]")
        raise typer.Exit(1)

    console.print(f"{address}: [green]{value}[/green]")


@app.command("utxos")
def utxos(address: str = typer.Argument(..., help="Address")):
    """Output unspent di un address"""
    try:
        outputs = _get_indexer().get_utxos(address)
    except IndexerException as e:
        console.print(f"[red]Error querying UTXOs: {e.message}[/red]")
        raise typer.Exit(1)

    if not outputs:
        console.print(f"[yellow]No unspent outputs for {address}[/yellow]")
        return

    table = Table(title=f"UTXO - {address}")
    table.add_column("Output", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_column("Height", justify="right")

    for output in outputs:
        table.add_row(str(output.key), str(output.value), str(output.produced_at_height))

    console.print(table)
    console.print(f"Total: [green]{sum(o.value for o in outputs)}[/green]")


@app.command("height")
def height():
    """Height corrente"""
    console.print(str(_get_indexer().get_current_height()))


@app.command("status")
def status():
    """Statistiche del ledger"""
    info = _get_indexer().get_status()
    stats = info["statistics"]

    table = Table(title="Ledger Status", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Version", info["version"])
    table.add_row("Height", str(info["current_height"]))
    table.add_row("Blocks", str(stats["blocks"]))
    table.add_row("Transactions", str(stats["transactions"]))
    table.add_row("Outputs", str(stats["outputs"]))
    table.add_row("Unspent Outputs", str(stats["unspent_outputs"]))
    table.add_row("Unspent Value", str(stats["unspent_value"]))
    table.add_row("Max Rollback Depth", str(info["max_rollback_depth"]))

    console.print(table)


@app.command("block")
def block(block_height: int = typer.Argument(..., metavar="HEIGHT", help="Block height")):
    """Mostra blocco memorizzato"""
    try:
        found = _get_indexer().get_block(block_height)
    except IndexerException as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    if found is None:
        console.print(f"[red]Block at height {block_height} not found[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Block {found.height} - {found.id[:16]}...")
    table.add_column("Transaction", style="cyan")
    table.add_column("Inputs", justify="right")
    table.add_column("Outputs", justify="right")
    table.add_column("Value", style="green", justify="right")

    for tx in found.transactions:
        table.add_row(tx.id, str(len(tx.inputs)), str(len(tx.outputs)), str(tx.total_output_value()))

    console.print(table)


# ============================================================================
# ROLLBACK
# ============================================================================

@app.command("rollback")
def rollback(
    target_height: int = typer.Argument(..., metavar="HEIGHT", help="Nuovo tip"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Non chiedere conferma")
):
    """Annulla i blocchi sopra HEIGHT"""
    indexer = _get_indexer()
    current = indexer.get_current_height()

    if not yes:
        typer.confirm(
            f"Roll back from height {current} to {target_height}?",
            abort=True
        )

    result = indexer.rollback_to_height(target_height)

    if not result.success:
        console.print(f"[red]Rollback failed ({result.code}): {result.error}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✅ Successfully rolled back to height {target_height}[/green]")


# ============================================================================
# VERSION
# ============================================================================

@app.command("version")
def version():
    """Versione e build info"""
    info = get_build_info()
    console.print(
        f"utxo-indexer [cyan]{info['version']}[/cyan] "
        f"(python {info['python']}, {info['platform']})"
    )


# ============================================================================
# MAIN CALLBACK
# ============================================================================

@app.callback()
def main(
    ctx: typer.Context,
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help="Data directory"),
    db_path: Optional[Path] = typer.Option(None, "--db-path", help="Database file"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log anche su console")
):
    """
    UTXO Indexer - ledger indexer CLI

    Ingest blocchi, query balance e rollback del ledger.
    """
    overrides = {}
    if data_dir is not None:
        overrides["data_dir"] = data_dir
    if db_path is not None:
        overrides["db_path"] = db_path
    if log_level is not None:
        overrides["log_level"] = log_level

    try:
        config = IndexerSettings(**overrides)
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(2)

    setup_logging(
        log_level=config.log_level,
        log_to_file=config.log_to_file,
        log_dir=config.log_dir,
        log_format=config.log_format,
        log_rotation_mb=config.log_rotation_mb,
        log_retention_days=config.log_retention_days,
        enable_console=verbose
    )

    state.config = config
    ctx.call_on_close(_close_indexer)


if __name__ == "__main__":
    app()


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "app",
]
