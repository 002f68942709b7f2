"""Tests for the newsharvest command line interface."""

import json
from contextlib import asynccontextmanager

import pytest
from click.testing import CliRunner

from newsharvest.cli import cli
from newsharvest.driver.playwright_client import PlaywrightRenderClient
from tests.conftest import SITE
from tests.utils import FakeRenderClient


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(tmp_path, harvest_config):
    path = tmp_path / "site.json"
    path.write_text(
        harvest_config.model_dump_json(by_alias=True), encoding="utf-8"
    )
    return path


@pytest.fixture
def fake_browser(monkeypatch):
    """Replace the Playwright client with a FakeRenderClient.

    Returns a function that sets the pages the fake serves.
    """
    served = {}

    @asynccontextmanager
    async def fake_open(config=None):
        yield FakeRenderClient(served)

    monkeypatch.setattr(PlaywrightRenderClient, "open", fake_open)
    return served.update


class TestPresets:
    """Tests for the presets command."""

    def test_lists_presets(self, runner):
        result = runner.invoke(cli, ["presets"])

        assert result.exit_code == 0
        assert "meduza" in result.output
        assert "https://www.rbc.ru/" in result.output

    def test_show_preset_as_json(self, runner):
        result = runner.invoke(cli, ["presets", "--show", "meduza"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["url"] == "https://meduza.io/"
        assert data["maxArticles"] == 50

    def test_unknown_preset(self, runner):
        result = runner.invoke(cli, ["presets", "--show", "nope"])

        assert result.exit_code == 2
        assert "Unknown preset" in result.output


class TestConfigSelection:
    """Tests for choosing between --config and --preset."""

    def test_neither_given(self, runner):
        result = runner.invoke(cli, ["run"])

        assert result.exit_code == 2
        assert "exactly one of --config or --preset" in result.output

    def test_both_given(self, runner, config_file):
        result = runner.invoke(
            cli, ["run", "--config", str(config_file), "--preset", "rbc"]
        )
        assert result.exit_code == 2

    def test_invalid_config_file(self, runner, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('{"url": "https://x/", "maxArticles": 0}')

        result = runner.invoke(cli, ["run", "--config", str(path)])

        assert result.exit_code == 2
        assert "Invalid configuration" in result.output

    def test_invalid_override(self, runner, config_file):
        result = runner.invoke(
            cli, ["run", "--config", str(config_file), "--workers", "0"]
        )
        assert result.exit_code == 2


class TestRun:
    """Tests for the run command against a fake browser."""

    def test_run_writes_outputs(
        self, runner, config_file, fake_browser, site_pages, harvest_config
    ):
        fake_browser(site_pages)

        result = runner.invoke(cli, ["run", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        assert "Done: 3 articles (2 with content, 1 failed)" in result.output
        articles = json.loads(
            harvest_config.outputs.json_path.read_text(encoding="utf-8")
        )
        assert [a["url"] for a in articles] == [
            f"{SITE}/news/1",
            f"{SITE}/politics/2",
            f"{SITE}/news/3",
        ]

    def test_run_with_overrides(
        self, runner, config_file, fake_browser, site_pages, harvest_config
    ):
        fake_browser(site_pages)

        result = runner.invoke(
            cli,
            [
                "run",
                "--config",
                str(config_file),
                "--category",
                "Политика",
                "--no-details",
            ],
        )

        assert result.exit_code == 0, result.output
        articles = json.loads(
            harvest_config.outputs.json_path.read_text(encoding="utf-8")
        )
        assert [a["url"] for a in articles] == [f"{SITE}/politics/2"]

    def test_unreachable_listing_exits_with_error(
        self, runner, config_file, fake_browser
    ):
        result = runner.invoke(cli, ["run", "--config", str(config_file)])

        assert result.exit_code == 1
        assert "Could not acquire listing page" in result.output

    def test_no_articles_exits_with_error(
        self, runner, config_file, fake_browser, harvest_config
    ):
        fake_browser({f"{SITE}/": "<html><body></body></html>"})

        result = runner.invoke(cli, ["run", "--config", str(config_file)])

        assert result.exit_code == 1
        assert "No articles were harvested" in result.output
        assert not harvest_config.outputs.json_path.exists()


class TestSections:
    """Tests for the sections command."""

    def test_lists_sections(self, runner, config_file, fake_browser, site_pages):
        fake_browser(site_pages)

        result = runner.invoke(cli, ["sections", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        assert f"1. Политика ({SITE}/politics/)" in result.output
        assert f"2. Экономика ({SITE}/economics/)" in result.output

    def test_unreachable_site(self, runner, config_file, fake_browser):
        result = runner.invoke(cli, ["sections", "--config", str(config_file)])

        assert result.exit_code == 1
