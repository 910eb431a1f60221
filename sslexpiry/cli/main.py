"""
sslexpiry CLI - Command Line Interface
by BitSpectreLabs
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

from sslexpiry import __version__
from sslexpiry.core.config import ConfigManager, ConfigError, SSLExpiryConfig
from sslexpiry.core.outcomes import (
    Outcome,
    PolicyError,
    SafeUntil,
    format_date,
    is_problem,
    rank_results,
    serialize_outcome,
)
from sslexpiry.core.runner import check_servers
from sslexpiry.core.targets import read_server_file


# sysexits.h EX_IOERR, returned when any server has a problem
EXIT_PROBLEM = 74
EXIT_CONFIG = 2

app = typer.Typer(
    name="sslexpiry",
    help="SSL expiry checker",
    add_completion=False,
)

err_console = Console(stderr=True)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


def setup_logging(level: str, log_file: Optional[str] = None) -> None:
    """Send log records to stderr through rich, and optionally to a file."""
    handlers: List[logging.Handler] = [
        RichHandler(console=err_console, show_path=False, show_time=False)
    ]
    if log_file:
        handlers.append(logging.FileHandler(Path(log_file).expanduser(), encoding="utf-8"))
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=handlers,
        force=True,
    )


def load_config() -> SSLExpiryConfig:
    """Load and validate configuration, exiting on errors."""
    manager = ConfigManager()
    try:
        config = manager.load()
    except ConfigError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=EXIT_CONFIG)
    errors = manager.validate()
    if errors:
        for error in errors:
            err_console.print(f"[red]Config error:[/red] {error}")
        raise typer.Exit(code=EXIT_CONFIG)
    return config


def render_results(results: Dict[str, Outcome], console: Console, verbose: bool = False) -> None:
    """
    Print one line per server, most urgent first.

    Safe servers are only listed when verbose. Advisory warnings are
    yellow, everything else that failed is red.
    """
    labels = rank_results(results)
    shown = [label for label in labels if verbose or is_problem(results[label])]
    if not shown:
        return
    width = max(len(label) for label in shown)

    for label in shown:
        outcome = results[label]
        prefix = label.ljust(width)
        if isinstance(outcome, SafeUntil):
            console.print(Text(f"{prefix} {format_date(outcome.date)}"), soft_wrap=True)
        elif isinstance(outcome, PolicyError) and not outcome.severe:
            console.print(Text(f"{prefix} {outcome.message}", style="yellow"), soft_wrap=True)
        else:
            console.print(Text(f"{prefix} {outcome.message}", style="red"), soft_wrap=True)


@app.command()
def main_command(
    servers: Optional[List[str]] = typer.Argument(
        None, metavar="SERVER", help="Check the specified server ([!]host[:port][/protocol])."
    ),
    days: Optional[int] = typer.Option(
        None, "-d", "--days", help="The number of days at which to warn of expiry. (default=30)"
    ),
    from_file: Optional[List[Path]] = typer.Option(
        None, "-f", "--from-file", metavar="FILENAME",
        help="Read the servers to check from the specified file."
    ),
    timeout: Optional[float] = typer.Option(
        None, "-t", "--timeout", metavar="SECONDS",
        help="The number of seconds to allow for server response. (default=30)"
    ),
    blocklist: Optional[List[str]] = typer.Option(
        None, "-b", "--blocklist", metavar="SERIAL",
        help="Reject certificates with this serial number."
    ),
    ignore_chain: Optional[bool] = typer.Option(
        None, "--ignore-chain/--check-chain", help="Only check the server's own certificate."
    ),
    ca_file: Optional[Path] = typer.Option(
        None, "--ca-file", help="Trust the CA certificates in this PEM file instead of the system store."
    ),
    json_output: Optional[Path] = typer.Option(None, "--json", help="Save JSON results"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
    verbose: int = typer.Option(0, "-v", "--verbose", count=True, help="Display verbose output."),
    version: bool = typer.Option(
        False, "-V", "--version", callback=version_callback, is_eager=True,
        help="Show program's version number and exit."
    ),
):
    """Check when the TLS certificates of SERVERs expire or become invalid."""
    config = load_config()
    check = config.check

    log_level = "DEBUG" if verbose >= 2 else config.advanced.log_level
    setup_logging(log_level, config.advanced.log_file)

    if days is not None and days < 0:
        err_console.print("[red]Error:[/red] --days must not be negative")
        raise typer.Exit(code=EXIT_CONFIG)
    if timeout is not None and timeout <= 0:
        err_console.print("[red]Error:[/red] --timeout must be positive")
        raise typer.Exit(code=EXIT_CONFIG)

    specs = list(servers or [])
    for filename in from_file or []:
        try:
            specs.extend(read_server_file(filename))
        except OSError as e:
            err_console.print(f"[red]Error:[/red] Cannot read {filename}: {e}")
            raise typer.Exit(code=EXIT_CONFIG)

    ca_path = ca_file or (Path(check.ca_file).expanduser() if check.ca_file else None)
    ca = None
    if ca_path:
        try:
            ca = ca_path.read_text(encoding="utf-8")
        except OSError as e:
            err_console.print(f"[red]Error:[/red] Cannot read {ca_path}: {e}")
            raise typer.Exit(code=EXIT_CONFIG)

    results = asyncio.run(check_servers(
        specs,
        days=days if days is not None else check.days,
        timeout=timeout if timeout is not None else check.timeout,
        blocklist=[*check.blocklist, *(blocklist or [])],
        ignore_chain=ignore_chain if ignore_chain is not None else check.ignore_chain,
        ca=ca,
        client_name=check.client_name,
    ))

    console = Console(highlight=False, no_color=no_color or not config.output.color_enabled)
    render_results(results, console, verbose=bool(verbose) or config.output.verbose)

    if json_output:
        data = {label: serialize_outcome(results[label]) for label in rank_results(results)}
        with open(json_output, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    if any(is_problem(outcome) for outcome in results.values()):
        raise typer.Exit(code=EXIT_PROBLEM)


def main():
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()
