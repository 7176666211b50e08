"""
CLI entry point for sPoX.
"""

import logging
from pathlib import Path
from typing import Optional

import structlog
import typer

from .config import Settings
from .context import Context
from .errors import ChainDataError, ConfigurationError

logger = structlog.get_logger()


def setup_logging(json_logs: bool = False, level: str = "info") -> None:
    """Configure structlog for console or JSON output."""
    processors = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_logs:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
    )


setup_logging()

app = typer.Typer(
    name="spox",
    help="sPoX: forwards sBTC deposits seen on bitcoin to Emily",
    add_completion=False,
)

ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to a TOML configuration file",
)


def _load_context(config_path: Optional[Path]) -> Context:
    try:
        settings = Settings.load(config_path)
    except ConfigurationError as e:
        logger.error("config_load_failed", error=str(e))
        raise typer.Exit(1)

    setup_logging(settings.json_logs, settings.log_level)

    try:
        return Context.from_settings(settings)
    except ConfigurationError as e:
        logger.error("context_build_failed", error=str(e))
        raise typer.Exit(1)


@app.command()
def run(
    config_path: Optional[Path] = ConfigOption,
    once: bool = typer.Option(
        False,
        "--once",
        help="Run a single cycle and exit (useful for testing)",
    ),
) -> None:
    """
    Watch the monitored deposit addresses and forward deposits to Emily.
    """
    context = _load_context(config_path)
    forwarder = context.forwarder()

    logger.info(
        "forwarder_initialized",
        emily=context.settings.emily_endpoint,
        polling_interval=context.settings.polling_interval,
        monitored_deposits=len(context.monitor.registry),
        tx_cache_capacity=context.settings.tx_cache_capacity,
    )

    if not len(context.monitor.registry):
        typer.echo("Warning: no deposits to monitor. Add [deposit.<alias>] tables to the config.")

    try:
        if once:
            results = forwarder.poll_once()
            if results is None:
                typer.echo("Cycle skipped")
            else:
                for result in results:
                    if result.success:
                        typer.echo(f"✓ Forwarded: {result.txid}:{result.vout}")
                    else:
                        typer.echo(f"✗ Failed: {result.txid}:{result.vout} ({result.error})")
                typer.echo(f"Processed {len(results)} deposits")
        else:
            try:
                forwarder.run()
            except KeyboardInterrupt:
                typer.echo("\nStopping forwarder...")
                forwarder.stop()
    finally:
        context.close()


@app.command()
def pending(config_path: Optional[Path] = ConfigOption) -> None:
    """
    List deposits that would be forwarded at the current chain tip
    (without submitting them).
    """
    context = _load_context(config_path)

    try:
        chain_tip = context.bitcoin.get_chain_tip()
        deposits = context.monitor.get_pending_deposits(chain_tip)
    except ChainDataError as e:
        typer.echo(f"Error fetching chain data: {e}", err=True)
        raise typer.Exit(1)
    finally:
        context.close()

    typer.echo(f"Chain tip: {chain_tip}")

    if not deposits:
        typer.echo("No pending deposits found.")
        return

    typer.echo(f"Found {len(deposits)} pending deposits:\n")
    for deposit in deposits:
        typer.echo(f"  TXID: {deposit.bitcoin_txid}")
        typer.echo(f"  VOUT: {deposit.bitcoin_tx_output_index}")
        typer.echo(f"  Deposit script: {deposit.deposit_script}")
        typer.echo(f"  Reclaim script: {deposit.reclaim_script}")
        typer.echo("")


@app.command()
def version() -> None:
    """Show the sPoX version."""
    from spox import __version__
    typer.echo(f"spox v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
