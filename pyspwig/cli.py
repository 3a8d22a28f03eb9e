"""CLI interface for pyspwig."""

import logging
from pathlib import Path
from typing import Any, Optional

import click

from .api import SpwigClient
from .config import DEFAULT_PORT, config
from .exceptions import SpwigConfigError, SpwigError
from .output import OutputFormatter

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool) -> None:
    """Configure logging based on the verbose flag."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        # Enable debug logging for pyspwig modules
        logging.getLogger("pyspwig").setLevel(logging.DEBUG)
        # httpx logs every request at INFO, including URLs only
        logging.getLogger("httpx").setLevel(logging.INFO)
    else:
        # Set default logging level to WARNING to suppress debug/info messages
        logging.basicConfig(level=logging.WARNING)


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.version_option(package_name="pyspwig")
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool) -> None:
    """Spwig theme tools - live theme development against a Spwig shop."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)


@main.command()
@click.argument("path", type=click.Path(file_okay=False, path_type=Path), default=".")
@click.option(
    "--shop",
    "-s",
    envvar="SPWIG_SHOP_URL",
    help="Spwig shop URL (e.g., http://localhost:8000)",
)
@click.option(
    "--port",
    "-p",
    type=click.IntRange(1, 65535),
    default=DEFAULT_PORT,
    show_default=True,
    help="Local port for the dev server",
)
@click.option(
    "--open/--no-open",
    "open_browser",
    default=True,
    help="Open the preview in a browser (default: on)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--username", "-u", envvar="SPWIG_USERNAME", help="Shop admin username")
@click.option(
    "--password",
    envvar="SPWIG_PASSWORD",
    help="Shop admin password (prompted if not given)",
)
@click.option(
    "--debounce",
    type=click.IntRange(min=0),
    default=None,
    help="Quiet period in ms before a changed file is synced (default: 200)",
)
@click.option(
    "--sync-deletes",
    is_flag=True,
    help="Remove locally deleted files from the shop",
)
@click.option(
    "--ignore",
    "-i",
    multiple=True,
    help="Extra glob pattern to exclude (repeatable)",
)
@click.pass_context
def dev(
    ctx: Any,
    path: Path,
    shop: Optional[str],
    port: int,
    open_browser: bool,
    verbose: bool,
    username: Optional[str],
    password: Optional[str],
    debounce: Optional[int],
    sync_deletes: bool,
    ignore: tuple[str, ...],
) -> None:
    """Start development server with hot reload.

    PATH: Theme directory (default: current directory)
    """
    from .dev import Credentials, DevOptions, DevSyncEngine
    from .dev.manifest import load_manifest

    out: OutputFormatter = ctx.obj["out"]
    configure_logging(verbose)

    shop_url = shop or config.shop_url
    if not shop_url:
        out.error("No shop URL given. Use --shop or run 'spwig configure'.")
        ctx.exit(1)

    try:
        debounce_ms = debounce if debounce is not None else config.debounce_ms
        timeout = config.timeout
    except SpwigConfigError as e:
        out.error(str(e))
        ctx.exit(1)

    theme_path = path.resolve()
    try:
        # Fail on a missing theme before asking for credentials
        load_manifest(theme_path)
    except SpwigError as e:
        out.error(str(e))
        ctx.exit(1)

    out.info("\n[blue]Spwig Theme SDK - Dev Server[/blue]\n")
    if not username:
        username = config.username or click.prompt("Username")
    if not password:
        password = click.prompt("Password", hide_input=True)

    options = DevOptions(
        theme_path=theme_path,
        shop_url=shop_url.rstrip("/"),
        open_browser=open_browser,
        debounce=debounce_ms / 1000,
        sync_deletes=sync_deletes,
        ignore=list(ignore),
    )
    client = SpwigClient(shop_url, timeout=timeout, client_info={"port": port})
    engine = DevSyncEngine(client, options, output=out)

    try:
        exit_code = engine.run(Credentials(username=username, password=password))
    except SpwigError as e:
        out.error(f"Dev server failed: {e}")
        if verbose:
            logger.exception("Fatal error")
        ctx.exit(1)

    stats = engine.stats
    out.print_summary(
        "Dev Session",
        [
            ("Synced", str(stats["synced"])),
            ("Failed", str(stats["failed"])),
            ("Deleted", str(stats["deleted"])),
        ],
    )
    ctx.exit(exit_code)


@main.command()
@click.option(
    "--shop",
    "-s",
    prompt="Spwig shop URL",
    help="Default shop URL for 'spwig dev'",
)
@click.option(
    "--username",
    "-u",
    default="",
    help="Default admin username (password is never stored)",
)
@click.pass_context
def configure(ctx: Any, shop: str, username: str) -> None:
    """Store default settings.

    Writes ~/.config/pyspwig/config for future use.
    """
    out: OutputFormatter = ctx.obj["out"]

    if not shop.startswith(("http://", "https://")):
        out.error("Shop URL must start with http:// or https://")
        ctx.exit(1)

    try:
        config.save("SPWIG_SHOP_URL", shop.rstrip("/"))
        if username:
            config.save("SPWIG_USERNAME", username)
    except (OSError, SpwigConfigError) as e:
        out.error(f"Could not save configuration: {e}")
        ctx.exit(1)

    out.print_summary(
        "Configuration",
        [
            ("Status", "✓ Configuration saved successfully"),
            ("Config file", str(config.get_config_path())),
            ("Shop", shop.rstrip("/")),
        ],
    )


if __name__ == "__main__":
    main()
