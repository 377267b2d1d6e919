#!/usr/bin/env python3
"""
Static publisher for a Markdown/notebook blog.

- Sources: *.md, *.markdown, *.ipynb with optional YAML front matter
- Posts live in _posts/ (YYYY-MM-DD-slug.md), layouts in _layouts/
- Output: one HTML page per document at its permalink, copied assets,
  the static tree and navigation.yml

Every malformed file, duplicate permalink, dangling link and unknown
layout found in a run is reported together; nothing is written unless
the whole build succeeds.
"""

from __future__ import annotations

import pathlib
import sys
from datetime import datetime

import click
import yaml

from .build import build_site, run_pipeline
from .config import SiteConfig
from .documents import new_post
from .errors import BuildFailed


def _load_config(source: pathlib.Path, **overrides) -> SiteConfig:
    try:
        return SiteConfig.load(source, **overrides)
    except (yaml.YAMLError, ValueError) as e:
        raise click.ClickException(f"bad site config: {e}") from e


def _report(e: BuildFailed) -> None:
    click.echo(f"ERROR: {e}", err=True)
    click.echo(e.report(), err=True)


@click.group()
@click.version_option(version="0.1.0")
def cli():
    """Build a static blog from Markdown and notebooks."""


@cli.command()
@click.argument("source", type=click.Path(exists=True, file_okay=False, path_type=pathlib.Path))
@click.argument("output", type=click.Path(file_okay=False, path_type=pathlib.Path))
@click.option("--drafts", is_flag=True, default=None, help="Also publish documents with published: false.")
@click.option("--workers", "-j", type=int, default=None, help="Parallel workers for parsing sources.")
def build(source: pathlib.Path, output: pathlib.Path, drafts, workers):
    """Render SOURCE into OUTPUT."""
    config = _load_config(source, drafts=drafts, workers=workers)
    try:
        build_site(config, output)
    except BuildFailed as e:
        _report(e)
        sys.exit(1)
    except ValueError as e:
        raise click.ClickException(str(e)) from e


@cli.command()
@click.argument("source", type=click.Path(exists=True, file_okay=False, path_type=pathlib.Path))
@click.option("--drafts", is_flag=True, default=None, help="Also check documents with published: false.")
def check(source: pathlib.Path, drafts):
    """Run every build phase on SOURCE without writing anything."""
    config = _load_config(source, drafts=drafts)
    try:
        result = run_pipeline(config)
    except BuildFailed as e:
        _report(e)
        sys.exit(1)
    click.echo(f"✓ {result.pages} page(s) ok")


@cli.command()
@click.argument("source", type=click.Path(exists=True, file_okay=False, path_type=pathlib.Path))
@click.argument("title")
@click.option("--date", "on", type=click.DateTime(formats=["%Y-%m-%d"]), default=None,
              help="Publish date (default: today).")
def new(source: pathlib.Path, title: str, on):
    """Start a new post in SOURCE titled TITLE."""
    config = _load_config(source)
    try:
        path = new_post(config, title, (on or datetime.now()).date())
    except FileExistsError as e:
        raise click.ClickException(f"{e} already exists") from e
    click.echo(f"✓ created {path.relative_to(config.source_dir).as_posix()}")


def main():
    cli()


if __name__ == "__main__":
    main()
