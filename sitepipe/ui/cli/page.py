"""
CLI commands for page sources.

Thin wrappers over ``sitepipe.core.services.page_scaffold``.
"""

from __future__ import annotations

import sys

import click


@click.group()
def page() -> None:
    """Page sources — scaffold new pages."""


@page.command("new")
@click.argument("name")
@click.option("--title", default="", help="Page title (default: from NAME).")
@click.option("--description", default="", help="Lead paragraph / meta description.")
@click.option("--breadcrumb", is_flag=True, help="Include a breadcrumb trail.")
@click.option("--force", is_flag=True, help="Overwrite an existing page.")
@click.pass_context
def new_page(
    ctx: click.Context,
    name: str,
    title: str,
    description: str,
    breadcrumb: bool,
    force: bool,
) -> None:
    """Create src/pages/NAME.html wired to the shared templates."""
    from sitepipe.core.config.loader import ConfigError, load_config
    from sitepipe.core.services.page_scaffold import PageExistsError, PageSpec, create_page

    try:
        config = load_config(ctx.obj.get("config_path"))
        spec = PageSpec(name, title=title, description=description, breadcrumb=breadcrumb)
        path = create_page(config, spec, overwrite=force)
    except (ConfigError, PageExistsError, ValueError) as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    click.secho(f"✅ Created {path}", fg="green")
    if not ctx.obj.get("quiet"):
        click.echo()
        click.echo("   Next steps:")
        click.echo(f"   1. Edit {path.name} and write the page content")
        click.echo("   2. Run `sitepipe serve` to preview it")
