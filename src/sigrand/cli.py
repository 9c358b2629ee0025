"""
Command-line interface for sigrand using Click.
"""

import sys
from pathlib import Path
from typing import Optional

import click

from .app_logger import set_default_logger
from .config import ConfigManager
from .daemon import SigrandDaemon
from .errors import SigrandError
from .logging_config import (
    ConfigurableAppLogger,
    HandlerConfig,
    LogHandler,
    VerbosityLevel,
    config_from_env,
    parse_log_format,
)


def _configure_logging(
    verbose: int,
    quiet: bool,
    log_level: Optional[str],
    log_format: Optional[str],
    log_file: Optional[str],
) -> None:
    """Configure logging from SIGRAND_LOG_* variables, then CLI options."""
    config = config_from_env()

    # -q/-v replace an inherited SIGRAND_LOG_LEVEL
    if quiet:
        config.verbosity = VerbosityLevel.QUIET
        config.global_level = None
    elif verbose:
        config.verbosity = VerbosityLevel.VERBOSE
        config.global_level = None

    if log_level:
        config.global_level = log_level.upper()

    if log_format:
        config.global_format = parse_log_format(log_format)

    if log_file:
        config.handlers = [
            HandlerConfig(type=LogHandler.CONSOLE),
            HandlerConfig(type=LogHandler.ROTATING_FILE, filename=log_file),
        ]

    try:
        logger = ConfigurableAppLogger(config)
    except (OSError, ValueError) as e:
        click.echo(f"Error: Cannot set up logging: {e}", err=True)
        sys.exit(1)
    set_default_logger(logger)


def version_callback(ctx, _, value):
    """Print the version and exit."""
    if not value or ctx.resilient_parsing:
        return
    from . import __version__

    click.echo(f"sigrand version {__version__}")
    ctx.exit()


@click.command()
@click.option(
    "--daemon/--foreground",
    "-d/-f",
    default=True,
    help="Fork into the background after launch (default) or stay attached",
)
@click.option("--kill", "-k", is_flag=True, help="Stop a running instance")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="SIGRAND_CONFIG",
    help="Config file (default ~/.config/sigrand/config.json)",
)
@click.option("--verbose", "-v", count=True, help="Show debug output")
@click.option(
    "--quiet", "-q", is_flag=True, help="Reduce output to warnings and errors only"
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set explicit log level (overrides verbose/quiet)",
)
@click.option(
    "--log-format",
    type=click.Choice(["json", "simple", "detailed"], case_sensitive=False),
    help="Log output format (default simple)",
)
@click.option(
    "--log-file", type=click.Path(), help="Write logs to file (in addition to console)"
)
@click.option(
    "--version",
    is_flag=True,
    expose_value=False,
    is_eager=True,
    callback=version_callback,
    help="Show version and exit",
)
@click.help_option("--help", "-h")
def main(
    daemon: bool,
    kill: bool,
    config_path: Optional[Path],
    verbose: int,
    quiet: bool,
    log_level: Optional[str],
    log_format: Optional[str],
    log_file: Optional[str],
) -> None:
    """
    Serve a random signature through a named pipe.

    Each time a program reads the pipe (~/.signature by default), sigrand
    picks a fresh signature from the %%-delimited signature file
    (~/.sigfile by default) and writes it.

    Examples:

        sigrand

        sigrand --foreground -v

        sigrand --kill
    """
    _configure_logging(verbose, quiet, log_level, log_format, log_file)

    sigrand = SigrandDaemon(ConfigManager(config_path), foreground=not daemon)

    try:
        if kill:
            if not sigrand.stop():
                click.echo("sigrand is not running")
            sys.exit(0)
        exit_code = sigrand.run()
    except SigrandError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if sigrand.error is not None:
        click.echo(f"Error: {sigrand.error}", err=True)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
