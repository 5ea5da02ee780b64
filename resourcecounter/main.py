# resourcecounter/main.py
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from resourcecounter.config import RunSettings, StorageType, load_config
from resourcecounter.display import render_final_state, render_worker_stats
from resourcecounter.driver import BackoffPolicy, ConcurrentDriver
from resourcecounter.errors import NotFoundError, StoreError, handle_errors
from resourcecounter.loader import load_resources
from resourcecounter.logging import configure_logging, logger
from resourcecounter.models.resource import UpdateMode
from resourcecounter.store import DynamoStore, get_store
from resourcecounter.updater import OptimisticUpdater

app = typer.Typer(
    help="Race concurrent counter increments against DynamoDB, with and without conditional writes.",
    add_completion=False,
)

console = Console()


@app.command()
@handle_errors
def run(
    load: bool = typer.Option(False, "--load", "-l", help="Load the table with generated records and exit"),
    safe: bool = typer.Option(False, "--safe", "-s", help="Use a safe conditional write"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Number of concurrent workers"),
    writes: Optional[int] = typer.Option(None, "--writes", "-n", min=1, help="Committed writes per worker"),
    resource_id: Optional[str] = typer.Option(None, "--resource-id", help="Resource to increment"),
    account_id: Optional[str] = typer.Option(None, "--account-id", help="Account of the resources"),
    backoff: Optional[bool] = typer.Option(None, "--backoff/--no-backoff", help="Jittered back-off between failed attempts"),
    backend: Optional[StorageType] = typer.Option(None, "--backend", case_sensitive=False, help="Store backend"),
    latency: Optional[float] = typer.Option(None, "--latency", min=0, help="Simulated round trip of the memory backend, in ms"),
    create_table: bool = typer.Option(False, "--create-table", help="With --load, create the DynamoDB table if missing"),
    fresh: bool = typer.Option(False, "--fresh", help="With --load, drop and recreate the DynamoDB table first"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config file (default: ~/.rescount/config.toml)"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also log to this file"),
):
    """Increment one resource's num_calls from several workers at once.

    Without options, runs the unsafe read-modify-write against resource 100.
    """
    config = load_config(
        config_file=config_file,
        overrides={
            "workers": workers,
            "writes_per_worker": writes,
            "resource_id": resource_id,
            "account_id": account_id,
            "storage_type": backend,
            "memory_latency_ms": latency,
            "backoff": {"enabled": backoff},
        },
    )
    configure_logging(config, debug=debug, log_file=log_file)

    if (fresh or create_table) and not load:
        typer.secho("--fresh and --create-table only apply with --load", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)

    with get_store(config) as store:
        if load:
            logger.info("loading tables with data...")
            if (fresh or create_table) and not isinstance(store, DynamoStore):
                logger.warning("--fresh and --create-table have no effect on the memory backend")
            try:
                if isinstance(store, DynamoStore):
                    if fresh:
                        store.delete_table()
                    if fresh or create_table:
                        store.ensure_table()
                load_resources(store, config.seed_start, config.seed_count, config.account_id)
            except StoreError as e:
                typer.secho(f"Error loading the table: {e}", fg=typer.colors.RED, err=True)
                raise typer.Exit(code=1)
            return

        if config.storage_type == StorageType.MEMORY:
            # Nothing survives between processes in memory
            load_resources(store, config.seed_start, config.seed_count, config.account_id)

        settings = RunSettings.from_config(config, UpdateMode.SAFE if safe else UpdateMode.UNSAFE)

        try:
            initial = store.get(settings.key).num_calls
        except NotFoundError:
            typer.secho(
                f"Resource {settings.key} does not exist; load the table first with --load",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1)
        except StoreError as e:
            typer.secho(f"Error reading the table: {e}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)

        driver = ConcurrentDriver(OptimisticUpdater(store), BackoffPolicy.from_config(config.backoff))
        stats = driver.run(settings.key, settings.workers, settings.writes_per_worker, settings.mode)
        render_worker_stats(stats, console)

        try:
            final = store.get(settings.key)
        except StoreError as e:
            typer.secho(f"Error reading the table: {e}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)

        render_final_state(final, initial + settings.expected_commits, console)


def main():
    app()


if __name__ == "__main__":
    main()
