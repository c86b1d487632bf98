"""Command line interface for moving tokens across the bridge."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import click
from web3 import Web3

from .evm.client import BridgeClient
from .evm.config import ClientConfig
from .exceptions import BridgeError, ValidationError
from .types import InboundOutcome
from .utils import to_base_units

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def create_client(config: ClientConfig) -> BridgeClient:
    return BridgeClient(config)


def _load_config(ctx: click.Context) -> ClientConfig:
    options = ctx.obj
    return ClientConfig.from_env(
        env_file=options["env_file"],
        overrides={
            "L1_RPC_URL": options["l1_rpc_url"],
            "L2_RPC_URL": options["l2_rpc_url"],
        },
    )


def _recipient(value: str | None) -> str | None:
    if value is None:
        return None
    try:
        return Web3.to_checksum_address(value)
    except ValueError as exc:
        raise ValidationError("Invalid recipient address", field="recipient", value=value) from exc


def _run(
    ctx: click.Context,
    operation: Callable[[BridgeClient, ClientConfig], Any],
    *,
    configure: Callable[[ClientConfig], ClientConfig] | None = None,
) -> Any:
    """Connect a client, run ``operation`` and map failures to exit status 1."""

    try:
        config = _load_config(ctx)
        if configure is not None:
            config = configure(config)
        client = create_client(config)
        client.connect()
        try:
            return operation(client, config)
        finally:
            client.disconnect()
    except BridgeError as exc:
        click.secho(f"Error: {exc.message}", fg="red", err=True)
        logger.debug("Bridge error details: %s", exc.details)
    except Exception as exc:
        logger.error("Unexpected failure: %s", exc, exc_info=True)
        click.secho(f"Error: {exc}", fg="red", err=True)
    ctx.exit(1)


@click.group()
@click.option("--l1-rpc-url", default=None, help="L1 JSON-RPC endpoint (overrides L1_RPC_URL).")
@click.option("--l2-rpc-url", default=None, help="L2 JSON-RPC endpoint (overrides L2_RPC_URL).")
@click.option(
    "--env-file",
    default=None,
    type=click.Path(dir_okay=False),
    help="Environment file to load, defaults to .env in the working directory.",
)
@click.option(
    "--log-level",
    default="INFO",
    envvar="LOGLEVEL",
    show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging verbosity.",
)
@click.pass_context
def cli(ctx, l1_rpc_url, l2_rpc_url, env_file, log_level):
    """Move tokens between L1 and L2 through the token gateways."""

    logging.basicConfig(level=log_level.upper(), format=LOG_FORMAT)
    ctx.ensure_object(dict)
    ctx.obj.update(l1_rpc_url=l1_rpc_url, l2_rpc_url=l2_rpc_url, env_file=env_file)


@cli.command("send-to-l2")
@click.argument("amount")
@click.argument("recipient", required=False)
@click.option(
    "--submission-fee-margin",
    type=click.IntRange(min=0),
    default=None,
    help="Percent added over the quoted submission fee (default 400).",
)
@click.option(
    "--gas-limit-margin",
    type=click.IntRange(min=0),
    default=None,
    help="Percent added over the estimated L2 gas limit (default 50).",
)
@click.pass_context
def send_to_l2(ctx, amount, recipient, submission_fee_margin, gas_limit_margin):
    """Send AMOUNT tokens from L1 to RECIPIENT on L2 (defaults to the signer)."""

    def operation(client: BridgeClient, config: ClientConfig):
        units = to_base_units(amount, config.bridge.token_decimals)
        result = client.send_to_l2(units, _recipient(recipient))
        click.secho(f"✓ Deposit submitted → Tx: {result.tx_hash}", fg="green")
        if result.outcome == InboundOutcome.REDEEMED:
            click.secho("✓ Tokens arrived on L2", fg="green")
        else:
            click.secho(
                "⚠️ Tokens are deposited on L2 but the ticket must be redeemed manually", fg="yellow"
            )
        return result

    _run(
        ctx,
        operation,
        configure=lambda config: config.with_margins(
            submission_fee_pct=submission_fee_margin, gas_limit_pct=gas_limit_margin
        ),
    )


@cli.command("start-send-to-l1")
@click.argument("amount")
@click.argument("recipient", required=False)
@click.pass_context
def start_send_to_l1(ctx, amount, recipient):
    """Start sending AMOUNT tokens from L2 to RECIPIENT on L1."""

    def operation(client: BridgeClient, config: ClientConfig):
        units = to_base_units(amount, config.bridge.token_decimals)
        result = client.start_send_to_l1(units, _recipient(recipient))
        click.secho(f"✓ Withdrawal submitted → Tx: {result.tx_hash}", fg="green")
        click.echo(
            f"Batch number {result.handle.batch_number}, index in batch "
            f"{result.handle.index_in_batch}"
        )
        return result

    _run(ctx, operation)


@cli.command("finish-send-to-l1")
@click.argument("tx_hash")
@click.pass_context
def finish_send_to_l1(ctx, tx_hash):
    """Execute the L1 side of a withdrawal whose dispute period has passed."""

    def operation(client: BridgeClient, config: ClientConfig):
        result = client.finish_send_to_l1(tx_hash)
        click.secho(f"✓ Withdrawal finalized → Tx: {result.tx_hash}", fg="green")
        return result

    _run(ctx, operation)


@cli.command("wait-finish-send-to-l1")
@click.argument("tx_hash")
@click.argument("retry_delay", type=click.FloatRange(min=0), required=False)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0),
    default=None,
    help="Give up after this many seconds (waits indefinitely by default).",
)
@click.pass_context
def wait_finish_send_to_l1(ctx, tx_hash, retry_delay, timeout):
    """Wait until a withdrawal is confirmed, then execute it on L1.

    RETRY_DELAY is the number of seconds between status checks (default 60).
    """

    def operation(client: BridgeClient, config: ClientConfig):
        result = client.finish_send_to_l1(
            tx_hash, wait=True, retry_delay=retry_delay, timeout=timeout
        )
        click.secho(
            f"✓ Withdrawal finalized after {result.status_reads} status checks → "
            f"Tx: {result.tx_hash}",
            fg="green",
        )
        return result

    _run(ctx, operation)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
