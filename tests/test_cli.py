"""Tests for the typer CLI."""

import json

import pytest
from typer.testing import CliRunner

from portfolio_bench.cli import app
from portfolio_bench.comparator import PerformanceComparator
from portfolio_bench.registry.token_registry import MappingSource, TokenRegistryClient

from conftest import PRIMARY_ADDRESS, READER_ADDRESS, FakeBalanceReader, FakePriceOracle

runner = CliRunner()


@pytest.fixture
def deployments_dir(tmp_path, deployment_data):
    (tmp_path / "412346_latest.json").write_text(json.dumps(deployment_data))
    return tmp_path


def _json_payload(output: str) -> dict:
    return json.loads(output[output.index("{\n"):])


class TestTokensCommand:
    """Tests for `portfolio-bench tokens`."""

    def test_json_route_response(self, deployments_dir):
        result = runner.invoke(
            app,
            ["tokens", "--json", "--deployments-dir", str(deployments_dir), "--chain-id", "412346"],
        )

        assert result.exit_code == 0
        payload = _json_payload(result.stdout)
        assert [t["symbol"] for t in payload["tokens"]][:2] == ["WETH", "USDC"]
        assert len(payload["tokens"]) == 10
        assert payload["contractAddresses"] == {
            "PORTFOLIO_READER": READER_ADDRESS,
            "YOUR_CONTRACT": PRIMARY_ADDRESS,
        }
        assert "lastUpdated" in payload

    def test_missing_deployment_file_exits_1(self, tmp_path):
        result = runner.invoke(
            app, ["tokens", "--deployments-dir", str(tmp_path), "--chain-id", "1"]
        )

        assert result.exit_code == 1
        assert "No tokens found" in result.stdout

    def test_malformed_deployment_file_exits_1(self, tmp_path):
        (tmp_path / "412346_latest.json").write_text("{not json")

        result = runner.invoke(
            app, ["tokens", "--deployments-dir", str(tmp_path), "--chain-id", "412346"]
        )

        assert result.exit_code == 1
        assert "Failed to load deployment data" in result.stdout


class TestCompareCommand:
    """Argument validation for `portfolio-bench compare`."""

    def test_requires_wallet(self, deployments_dir, monkeypatch):
        monkeypatch.setattr("portfolio_bench.cli.get_config", lambda: _config_without_wallet())

        result = runner.invoke(app, ["compare", "--deployments-dir", str(deployments_dir)])

        assert result.exit_code == 1
        assert "No wallet address" in result.stdout

    def test_rejects_unknown_output(self, deployments_dir):
        result = runner.invoke(
            app,
            ["compare", "-w", "0x" + "1" * 40, "-o", "xml", "--deployments-dir", str(deployments_dir)],
        )

        assert result.exit_code == 1
        assert "Invalid output format" in result.stdout


def _config_without_wallet():
    from portfolio_bench.core.config import AppConfig

    return AppConfig(wallet_address=None)


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "Portfolio Bench v" in result.stdout


def _json_documents(output: str) -> list[dict]:
    decoder = json.JSONDecoder()
    documents = []
    pos = output.find("{\n")
    while pos != -1:
        document, end = decoder.raw_decode(output, pos)
        documents.append(document)
        pos = output.find("{\n", end)
    return documents


@pytest.fixture
def fake_comparator(monkeypatch, deployment_data, tokens):
    """Route `compare` through in-memory readers instead of a chain node."""
    balances = {t.address: 10**t.decimals for t in tokens}
    built = []

    def from_config(cls, config, wallet=None):
        comparator = cls(
            TokenRegistryClient(MappingSource(deployment_data)),
            FakeBalanceReader(balances, delay=0.005),
            FakePriceOracle({"WETH": 2000.0, "USDC": 1.0}),
            wallet=wallet,
        )
        built.append((config, comparator))
        return comparator

    monkeypatch.setattr(PerformanceComparator, "from_config", classmethod(from_config))
    return built


class TestCompareRun:
    """End-to-end `portfolio-bench compare` runs against fake readers."""

    def test_table_output(self, fake_comparator, wallet):
        result = runner.invoke(app, ["compare", "-w", wallet, "-n", "2", "--chain-id", "31337"])

        assert result.exit_code == 0
        assert "Performance Comparison" in result.stdout
        assert "Average improvement over 2 cycles" in result.stdout

        config, comparator = fake_comparator[0]
        assert config.chain_id == 31337
        assert comparator.reader.closed is True
        assert comparator.cycle_id == 2

    def test_json_output_is_parseable(self, fake_comparator, wallet):
        result = runner.invoke(app, ["compare", "-w", wallet, "-n", "2", "-o", "json"])

        assert result.exit_code == 0
        documents = _json_documents(result.stdout)
        assert [d["cycle_id"] for d in documents] == [1, 2]
        assert documents[0]["wallet"] == wallet
        assert documents[0]["batched"]["valuation"]["total_usd"] == pytest.approx(2001.0)
        assert "Average improvement" not in result.stdout

    def test_save_last_result(self, fake_comparator, wallet, tmp_path):
        target = tmp_path / "out" / "result"

        result = runner.invoke(app, ["compare", "-w", wallet, "-o", "json", "-s", str(target)])

        assert result.exit_code == 0
        saved = json.loads((tmp_path / "out" / "result.json").read_text())
        assert saved["cycle_id"] == 1
        assert len(saved["individual"]["states"]) == 10
