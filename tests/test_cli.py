"""
Tests for the command line interface.
"""

import json
from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner

from stockgateway.cli import cli
from stockgateway.config import LoggingConfig
from stockgateway.data.granularity import Granularity
from stockgateway.exceptions import UpstreamError

from conftest import CountingUpstream


@pytest.fixture(autouse=True)
def no_root_logging(monkeypatch):
    """Keep the CLI from reconfiguring the root logger during tests."""
    monkeypatch.setattr(LoggingConfig, "apply", lambda self: None)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def stub_upstream():
    """Replace the HTTP fetcher the CLI builds with a counting stub."""
    upstream = CountingUpstream(payloads={(Granularity.DAILY, "IBM"): '{"price":100}'})
    with patch("stockgateway.cli.AlphaVantageFetcher", return_value=upstream):
        yield upstream


class TestFetchCommand:
    """Tests for `stockgateway fetch`."""

    def test_fetch_prints_payload(self, runner, stub_upstream):
        result = runner.invoke(cli, ["fetch", "IBM"], obj={})

        assert result.exit_code == 0, result.output
        assert '{"price":100}' in result.output
        assert "DAILY_IBM MISS" in result.output
        assert stub_upstream.calls == 1

    def test_repeat_hits_cache(self, runner, stub_upstream):
        result = runner.invoke(cli, ["fetch", "IBM", "--repeat", "3"], obj={})

        assert result.exit_code == 0, result.output
        assert result.output.count("MISS") == 1
        assert result.output.count("HIT") == 2
        assert stub_upstream.calls == 1

    def test_granularity_option(self, runner, stub_upstream):
        result = runner.invoke(cli, ["fetch", "msft", "-g", "WEEKLY"], obj={})

        assert result.exit_code == 0, result.output
        assert "WEEKLY_MSFT" in result.output
        assert stub_upstream.requests == [(Granularity.WEEKLY, "msft")]

    def test_pretty_output(self, runner, stub_upstream):
        result = runner.invoke(cli, ["fetch", "IBM", "--pretty"], obj={})

        assert result.exit_code == 0, result.output
        assert '"price": 100' in result.output

    def test_invalid_granularity(self, runner, stub_upstream):
        result = runner.invoke(cli, ["fetch", "IBM", "-g", "hourly"], obj={})

        assert result.exit_code != 0
        assert stub_upstream.calls == 0

    def test_upstream_failure_exits_with_error(self, runner):
        upstream = CountingUpstream(error=UpstreamError("Upstream returned HTTP 503", status_code=503))
        with patch("stockgateway.cli.AlphaVantageFetcher", return_value=upstream):
            result = runner.invoke(cli, ["fetch", "IBM"], obj={})

        assert result.exit_code == 1
        assert "Error fetching DAILY_IBM" in result.output


class TestShowConfigCommand:
    """Tests for `stockgateway show-config`."""

    def test_json_output(self, runner):
        result = runner.invoke(cli, ["show-config", "--output", "json"], obj={})

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["upstream"]["connect_timeout_seconds"] == 5.0
        assert data["upstream"]["api_key"] == "demo"

    def test_yaml_output_with_config_file(self, runner, tmp_path):
        path = tmp_path / "gateway.yaml"
        path.write_text("server:\n  port: 9999\n")

        result = runner.invoke(cli, ["--config", str(path), "show-config"], obj={})

        assert result.exit_code == 0, result.output
        assert yaml.safe_load(result.output)["server"]["port"] == 9999

    def test_api_key_masked(self, runner, monkeypatch):
        monkeypatch.setenv("ALPHAVANTAGE_APIKEY", "real-secret")

        result = runner.invoke(cli, ["show-config", "-o", "json"], obj={})

        assert "real-secret" not in result.output
        assert json.loads(result.output)["upstream"]["api_key"] == "***"


class TestServeCommand:
    """Tests for `stockgateway serve`."""

    def test_serve_runs_uvicorn(self, runner, stub_upstream):
        with patch("uvicorn.run") as mock_run:
            result = runner.invoke(cli, ["serve", "--port", "9001"], obj={})

        assert result.exit_code == 0, result.output
        mock_run.assert_called_once()
        _, kwargs = mock_run.call_args
        assert kwargs["port"] == 9001
        assert kwargs["host"] == "0.0.0.0"
        assert "/api/stocks/{symbol}/daily" in result.output
