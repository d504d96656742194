"""
Tests for the command-line entry point.

Test plan:
- Missing configuration → exit 1 with a one-line "payment failed: ..."
- Flags map onto settings (--to, --amount, --memo, --no-serve-health)
- Success prints "payment submitted: <hash>" and exits 0
- Failure prints the cause chain and exits 1
- run_from_settings drives the pipeline over an injected transport
- Health server answers /health during a run and releases its port once
  the payment is terminal, on success and on fail-fast
"""

import asyncio
import json
import logging
import os
import socket
from collections.abc import Iterator
from pathlib import Path

import httpx
import pytest
from click.testing import CliRunner

from stellar_remit import cli as cli_module
from stellar_remit.cli import cli, run_from_settings
from stellar_remit.config.settings import RemitSettings
from stellar_remit.errors import InvalidAmount
from stellar_remit.pipeline import PaymentResult, PipelineState
from stellar_remit.submitter import Success
from stellar_remit.transport import GatewayResponse
from tests.fakes import GATEWAY_URL, RECEIVER, SENDER, FakeTransport, account_response

TX_HASH = "ef" * 32


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Isolate from local config and restore the root log handlers the CLI replaces."""
    for key in list(os.environ):
        if key.upper().startswith("STELLAR_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def captured(monkeypatch: pytest.MonkeyPatch) -> list[RemitSettings]:
    """Replace the network run with one that records settings and succeeds."""
    seen: list[RemitSettings] = []

    async def fake_run(settings: RemitSettings, **_: object) -> PaymentResult:
        seen.append(settings)
        result = PaymentResult()
        result.outcome = Success(hash=TX_HASH)
        result.advance(PipelineState.SUCCEEDED)
        return result

    monkeypatch.setattr(cli_module, "run_from_settings", fake_run)
    return seen


BASE_ARGS = [
    "--horizon", GATEWAY_URL,
    "--secret", SENDER.secret,
    "--to", RECEIVER.public_key,
    "--no-serve-health",
]


class TestCli:
    def test_missing_config(self) -> None:
        result = CliRunner().invoke(cli, [])

        assert result.exit_code == 1
        assert "payment failed: invalid configuration" in result.output

    def test_success(self, captured: list[RemitSettings]) -> None:
        result = CliRunner().invoke(cli, [*BASE_ARGS, "--amount", "2500000", "--memo", "rent"])

        assert result.exit_code == 0, result.output
        assert f"payment submitted: {TX_HASH}" in result.output
        settings = captured[0]
        assert settings.horizon_url == GATEWAY_URL
        assert settings.receiver_address == RECEIVER.public_key
        assert settings.amount == 2_500_000
        assert settings.memo == "rent"
        assert settings.serve_health is False

    def test_receiver_alias(self, captured: list[RemitSettings]) -> None:
        args = ["--horizon", GATEWAY_URL, "--secret", SENDER.secret, "--receiver", RECEIVER.public_key]

        result = CliRunner().invoke(cli, args)

        assert result.exit_code == 0, result.output
        assert captured[0].receiver_address == RECEIVER.public_key

    def test_failure_exit_code(self, monkeypatch: pytest.MonkeyPatch) -> None:
        async def failing_run(settings: RemitSettings, **_: object) -> PaymentResult:
            result = PaymentResult()
            result.fail(InvalidAmount("amount must be > 0 stroops, got: 0"))
            return result

        monkeypatch.setattr(cli_module, "run_from_settings", failing_run)

        result = CliRunner().invoke(cli, BASE_ARGS)

        assert result.exit_code == 1
        assert "payment failed: amount must be > 0 stroops" in result.output

    def test_missing_config_file(self) -> None:
        result = CliRunner().invoke(cli, [*BASE_ARGS, "--config", "nope.toml"])

        assert result.exit_code == 1
        assert "config file not found" in result.output

    def test_version(self) -> None:
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "stellar-remit" in result.output


class TestRunFromSettings:
    @pytest.mark.asyncio
    async def test_runs_pipeline(self) -> None:
        settings = RemitSettings(
            horizon_url=GATEWAY_URL,
            sender_secret=SENDER.secret,
            receiver_address=RECEIVER.public_key,
            serve_health=False,
        )
        transport = FakeTransport(
            get_responses=[account_response("41")],
            post_responses=[GatewayResponse(status_code=200, text=json.dumps({"hash": TX_HASH}))],
        )

        result = await run_from_settings(settings, transport=transport)

        assert result.succeeded
        assert result.outcome == Success(hash=TX_HASH)
        assert transport.call_count == 2


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def _port_released(port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind(("127.0.0.1", port))
        except OSError:
            return False
        return True


class HealthCheckingTransport(FakeTransport):
    """Polls the live /health endpoint before answering the sequence lookup."""

    def __init__(self, port: int, **kwargs: list[GatewayResponse | Exception]) -> None:
        super().__init__(**kwargs)
        self._health_url = f"http://127.0.0.1:{port}/health"
        self.health_body: str | None = None

    async def get(self, url: str) -> GatewayResponse:
        async with httpx.AsyncClient(timeout=1.0) as client:
            for _ in range(100):
                try:
                    response = await client.get(self._health_url)
                except httpx.TransportError:
                    await asyncio.sleep(0.05)
                    continue
                self.health_body = response.text
                break
        return await super().get(url)


class TestHealthServerLifecycle:
    def _settings(self, port: int, secret: str = SENDER.secret) -> RemitSettings:
        return RemitSettings(
            horizon_url=GATEWAY_URL,
            sender_secret=secret,
            receiver_address=RECEIVER.public_key,
            serve_health=True,
            health_port=port,
        )

    @pytest.mark.asyncio
    async def test_serves_during_run_and_stops_after(self) -> None:
        port = _free_port()
        transport = HealthCheckingTransport(
            port,
            get_responses=[account_response("41")],
            post_responses=[GatewayResponse(status_code=200, text=json.dumps({"hash": TX_HASH}))],
        )

        result = await run_from_settings(self._settings(port), transport=transport)

        assert result.succeeded
        assert transport.health_body == "OK"
        assert _port_released(port)

    @pytest.mark.asyncio
    async def test_stops_after_fail_fast(self) -> None:
        port = _free_port()
        transport = FakeTransport()

        result = await asyncio.wait_for(
            run_from_settings(self._settings(port, secret="SNOTAREALSEED"), transport=transport),
            timeout=10,
        )

        assert result.state == PipelineState.FAILED
        assert transport.call_count == 0
        assert _port_released(port)
