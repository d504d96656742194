"""Command-line entry point: one payment per invocation."""

from __future__ import annotations

import asyncio
import contextlib

import click

from stellar_remit import __version__
from stellar_remit.config.logging import configure_logging
from stellar_remit.config.settings import RemitSettings
from stellar_remit.errors import ConfigError, cause_chain
from stellar_remit.observability import PrometheusMetrics
from stellar_remit.pipeline import PaymentResult, send_payment
from stellar_remit.server import HealthServer
from stellar_remit.transport import GatewayTransport, HttpxTransport


async def run_from_settings(
    settings: RemitSettings,
    *,
    transport: GatewayTransport | None = None,
    metrics: PrometheusMetrics | None = None,
) -> PaymentResult:
    """Run one payment from loaded settings.

    Starts the health server beside the pipeline when enabled and shuts
    it down once the payment reaches a terminal state.
    """
    metrics = metrics or PrometheusMetrics()

    health_task: asyncio.Task[None] | None = None
    health: HealthServer | None = None
    if settings.serve_health:
        health = HealthServer(metrics, settings.health_host, settings.health_port)
        health_task = asyncio.create_task(health.serve())

    try:
        async with contextlib.AsyncExitStack() as stack:
            if transport is None:
                transport = await stack.enter_async_context(HttpxTransport(timeout=settings.timeout_s))
            return await send_payment(
                secret=settings.sender_secret.get_secret_value(),
                receiver=settings.receiver_address,
                amount=settings.amount,
                memo=settings.memo,
                fee=settings.fee,
                network_passphrase=settings.network_passphrase,
                transport=transport,
                gateway_url=settings.horizon_url,
                retry_policy=settings.retry.to_policy(),
                metrics=metrics,
            )
    finally:
        if health is not None and health_task is not None:
            health.stop()
            await health_task


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="stellar-remit")
@click.option("--amount", type=int, default=None, help="Amount in stroops (1 XLM = 10,000,000 stroops).")
@click.option("--to", "to", default=None, help="Recipient address (G... public key).")
@click.option("--receiver", default=None, help="Receiver address override (same as --to).")
@click.option("--memo", default=None, help="Text memo, at most 28 bytes.")
@click.option("--fee", type=int, default=None, help="Fee per operation in stroops.")
@click.option("--horizon", default=None, help="Horizon URL override.")
@click.option("--secret", default=None, help="Sender secret override (S... seed).")
@click.option("-c", "--config", "config_path", default=None, help="TOML config file path.")
@click.option(
    "--serve-health/--no-serve-health",
    default=None,
    help="Expose /health and /metrics while the payment runs.",
)
@click.option("-v", "--verbose", is_flag=True, help="Debug logging.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.pass_context
def cli(
    ctx: click.Context,
    amount: int | None,
    to: str | None,
    receiver: str | None,
    memo: str | None,
    fee: int | None,
    horizon: str | None,
    secret: str | None,
    config_path: str | None,
    serve_health: bool | None,
    verbose: bool,
    log_json: bool,
) -> None:
    """stellar-remit — send one native payment through a Horizon gateway."""
    try:
        settings = RemitSettings.from_cli(
            config_path=config_path,
            horizon_url=horizon,
            sender_secret=secret,
            receiver_address=to or receiver,
            amount=amount,
            memo=memo,
            fee=fee,
            serve_health=serve_health,
            verbose=verbose or None,
            log_json=log_json or None,
        )
    except ConfigError as exc:
        configure_logging(verbose=verbose, log_json=log_json)
        click.echo(f"payment failed: {cause_chain(exc)}", err=True)
        ctx.exit(1)

    configure_logging(verbose=settings.verbose, log_json=settings.log_json)
    result = asyncio.run(run_from_settings(settings))
    click.echo(result.summary(), err=not result.succeeded)
    ctx.exit(result.exit_code)


def main() -> None:
    cli()
