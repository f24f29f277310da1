"""CLI entrypoint for stable-balances."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Annotated

import typer

from .exceptions import AddressValidationError
from .logger import setup_logging
from .service import BalanceService, normalize_address
from .settings import BalanceSettings
from .state import AppState

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    add_help_option=True,
    pretty_exceptions_enable=True,
    pretty_exceptions_short=True,
    pretty_exceptions_show_locals=False,
    rich_markup_mode="rich",
    help="Multi-chain stablecoin balance lookup and HTTP API.",
)


class OutputFormat(str, Enum):
    TABLE = "table"
    JSON = "json"


ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to a TOML config file (can include [stable_balances] table).",
    ),
]
LogLevelOption = Annotated[
    str | None,
    typer.Option(
        "--log-level",
        help="Override logging verbosity (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL).",
    ),
]


def _build_logger() -> logging.Logger:
    """Build a logger instance."""
    return logging.getLogger("stable_balances")


def _load_settings(
    config_path: Path | None, log_level: str | None, **overrides: object
) -> BalanceSettings:
    if config_path:
        os.environ["STABLE_BALANCES_CONFIG"] = str(config_path)

    init_kwargs: dict[str, object] = {
        key: value for key, value in overrides.items() if value is not None
    }
    if log_level is not None:
        init_kwargs["log_level"] = log_level.upper()

    settings = BalanceSettings(**init_kwargs)
    setup_logging(settings.log_level)
    return settings


async def _query(state: AppState, wallet_address: str, force: bool):
    try:
        return await state.service.query(wallet_address, force_refresh=force)
    finally:
        await state.service.close()


@app.command()
def query(
    wallet_address: Annotated[
        str, typer.Argument(help="Wallet address to look up.")
    ],
    force: Annotated[
        bool,
        typer.Option("--force", help="Ignore any cached result."),
    ] = False,
    output: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Output format."),
    ] = OutputFormat.TABLE,
    config_path: ConfigOption = None,
    log_level: LogLevelOption = None,
    show_config: Annotated[
        bool,
        typer.Option(
            "--show-config",
            help="Print effective config (with RPC credentials redacted) and exit.",
        ),
    ] = False,
):
    """Look up stablecoin balances for a wallet across all configured chains."""
    settings = _load_settings(config_path, log_level)

    if show_config:
        typer.echo(json.dumps(settings.as_safe_dict(), indent=2))
        raise typer.Exit(code=0)

    try:
        wallet = normalize_address(wallet_address)
    except AddressValidationError as e:
        raise typer.BadParameter(str(e), param_hint="WALLET_ADDRESS") from e

    state = AppState(
        settings=settings,
        logger=_build_logger(),
        service=BalanceService.from_settings(settings),
    )
    response = asyncio.run(_query(state, wallet, force))

    if output is OutputFormat.JSON:
        typer.echo(json.dumps(response.to_dict(), indent=2))
    else:
        from .formatter import format_balances_table

        format_balances_table(wallet, response)


@app.command()
def serve(
    host: Annotated[
        str | None, typer.Option("--host", help="Interface to bind.")
    ] = None,
    port: Annotated[
        int | None, typer.Option("--port", "-p", help="Port to listen on.")
    ] = None,
    config_path: ConfigOption = None,
    log_level: LogLevelOption = None,
):
    """Serve the balance query API over HTTP."""
    import uvicorn

    from .api import create_app

    settings = _load_settings(config_path, log_level, host=host, port=port)
    logger = _build_logger()
    logger.info("Starting balance API on http://%s:%d", settings.host, settings.port)

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


def run() -> None:
    """Entrypoint used by the console script."""
    app()


if __name__ == "__main__":
    run()
