"""newsharvest CLI: harvest news sites from the command line.

Usage:
    newsharvest presets                         # List built-in site presets
    newsharvest presets --show meduza           # Print a preset as JSON config
    newsharvest sections --preset meduza        # List a site's sections
    newsharvest run --preset rbc                # Harvest with a preset
    newsharvest run --config site.json -v       # Harvest with a config file
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click
from pydantic import ValidationError

from newsharvest.common.exceptions import (
    ListingUnavailableException,
    TransientException,
)
from newsharvest.config import HarvestConfig, load_config


def _configure_logging(verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def resolve_config(
    config_path: str | None, preset: str | None
) -> HarvestConfig:
    """Load the run configuration from a file or a preset name.

    Raises:
        click.BadParameter: If neither or both are given, the preset is
            unknown, or the file does not validate.
    """
    from newsharvest.presets import PRESETS

    if (config_path is None) == (preset is None):
        raise click.BadParameter("Give exactly one of --config or --preset.")

    if preset is not None:
        try:
            return PRESETS[preset]
        except KeyError as e:
            raise click.BadParameter(
                f"Unknown preset '{preset}'. "
                f"Available: {', '.join(sorted(PRESETS))}"
            ) from e

    try:
        return load_config(config_path)
    except ValidationError as e:
        raise click.BadParameter(
            f"Invalid configuration in {config_path}:\n{e}"
        ) from e


@click.group()
@click.version_option(package_name="newsharvest")
def cli() -> None:
    """newsharvest: resilient news article harvester."""


@cli.command()
@click.option(
    "--show",
    "show",
    default=None,
    help="Print the named preset as a JSON configuration.",
)
def presets(show: str | None) -> None:
    """List built-in site presets."""
    from newsharvest.presets import PRESETS

    if show is not None:
        config = resolve_config(None, show)
        click.echo(config.model_dump_json(by_alias=True, indent=2))
        return

    for name in sorted(PRESETS):
        click.echo(f"{name:<10} {PRESETS[name].url}")


@cli.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON configuration file.",
)
@click.option("--preset", default=None, help="Built-in site preset.")
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging.")
def sections(
    config_path: str | None, preset: str | None, verbose: bool
) -> None:
    """List the category sections in a site's navigation menu."""
    _configure_logging(verbose)
    config = resolve_config(config_path, preset)

    from newsharvest.driver.listing import (
        ListingExtractor,
        discover_sections,
    )
    from newsharvest.driver.playwright_client import PlaywrightRenderClient

    async def _go() -> list[tuple[str, str]]:
        async with PlaywrightRenderClient.open(config.browser) as client:
            extractor = ListingExtractor(
                client,
                config.selectors.listing,
                config.retry_policy,
                config.timeout_ms,
            )
            page = await extractor.render(config.url)
        return discover_sections(
            page.document(), config.selectors.sections, config.url
        )

    try:
        found = asyncio.run(_go())
    except TransientException as e:
        raise click.ClickException(str(e)) from e

    if not found:
        click.echo("No sections found.")
        return
    for index, (name, url) in enumerate(found, start=1):
        click.echo(f"{index}. {name} ({url})")


@cli.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON configuration file.",
)
@click.option("--preset", default=None, help="Built-in site preset.")
@click.option("--url", default=None, help="Override the listing URL.")
@click.option(
    "--max-articles",
    type=int,
    default=None,
    help="Override the maximum number of articles.",
)
@click.option(
    "--category",
    "categories",
    multiple=True,
    help="Keep only articles whose category contains this text. Repeatable.",
)
@click.option(
    "--no-details",
    is_flag=True,
    help="Only read the listing page; skip article pages.",
)
@click.option(
    "--workers",
    type=int,
    default=None,
    help="Maximum article pages rendered at once.",
)
@click.option(
    "--debug-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Save rendered HTML snapshots to this directory.",
)
@click.option(
    "--no-headless",
    is_flag=True,
    help="Show the browser window.",
)
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging.")
def run(
    config_path: str | None,
    preset: str | None,
    url: str | None,
    max_articles: int | None,
    categories: tuple[str, ...],
    no_details: bool,
    workers: int | None,
    debug_dir: str | None,
    no_headless: bool,
    verbose: bool,
) -> None:
    """Harvest articles and write JSON, CSV and statistics files.

    \b
    Examples:
        newsharvest run --preset rbc
        newsharvest run --preset meduza --category Политика --max-articles 5
        newsharvest run --config site.json --no-details
    """
    _configure_logging(verbose)
    config = resolve_config(config_path, preset)

    try:
        config = config.with_overrides(
            url=url,
            max_articles=max_articles,
            categories=frozenset(categories) if categories else None,
            fetch_details=False if no_details else None,
            concurrency=workers,
            debug_dir=Path(debug_dir) if debug_dir else None,
            browser=config.browser.model_copy(update={"headless": False})
            if no_headless
            else None,
        )
    except ValidationError as e:
        raise click.BadParameter(f"Invalid option value:\n{e}") from e

    from newsharvest.driver.harvester import (
        HarvestResult,
        Harvester,
        write_outputs,
    )
    from newsharvest.driver.playwright_client import PlaywrightRenderClient

    async def _go() -> HarvestResult:
        async with PlaywrightRenderClient.open(config.browser) as client:
            return await Harvester(config, client).run()

    click.echo(f"Site:     {config.url}")
    click.echo(f"Articles: up to {config.max_articles}")

    try:
        result = asyncio.run(_go())
    except ListingUnavailableException as e:
        raise click.ClickException(e.message) from e

    if not result.records:
        raise click.ClickException("No articles were harvested.")

    for path in write_outputs(result, config.outputs):
        click.echo(f"Wrote {path}")

    stats = result.stats
    click.echo(
        f"Done: {stats.total_articles} articles "
        f"({stats.articles_with_content} with content, "
        f"{stats.degraded_articles} failed) in {stats.execution_time_ms}ms"
    )


def main() -> None:
    """Entry point for the ``newsharvest`` console script."""
    cli()
