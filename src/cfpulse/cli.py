import logging

import click
from rich.logging import RichHandler

from .core import CfApplicationCloner, build_operations, console
from .errors import CfPulseError
from .server import CfPulseTools, create_server
from .services.config_loader import ConfigLoader
from .services.target import CfTargetService

# Stdout is reserved for the MCP stdio transport; logs go to stderr.
logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(console=console, rich_tracebacks=True, show_level=False, show_path=False)],
)


def build_runtime(settings):
    """Returns the shared session cache, the cloner and the target service."""
    logger = logging.getLogger("cfpulse")
    operations = build_operations(settings)
    cloner = CfApplicationCloner(settings=settings, operations=operations)
    target_service = CfTargetService(operations=operations, logger=logger)
    return operations, cloner, target_service


def _configure_logging(verbose: bool, log_file):
    logger = logging.getLogger("cfpulse")
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)


@click.group()
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help="Path to a YAML configuration file. Defaults to .cfpulse.yml if present.",
)
@click.option("--verbose", is_flag=True, default=False, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.pass_context
def main(ctx, config, verbose, log_file):
    """Cloud Foundry operations for automated agents."""
    _configure_logging(verbose, log_file)

    try:
        settings = ConfigLoader().load_settings(config)
        settings.validate(logger=logging.getLogger("cfpulse"))
    except CfPulseError as exc:
        raise click.ClickException(str(exc)) from exc

    ctx.obj = {"settings": settings}


@main.command()
@click.argument("source_app")
@click.argument("target_app")
@click.option("--org", "organization", required=False, help="Organization (default: current target)")
@click.option("--space", required=False, help="Space (default: current target)")
@click.pass_context
def clone(ctx, source_app, target_app, organization, space):
    """Clone SOURCE_APP into a new app named TARGET_APP."""
    operations, cloner, _ = build_runtime(ctx.obj["settings"])
    try:
        result = cloner.clone(source_app, target_app, organization=organization, space=space)
    except CfPulseError as exc:
        raise click.ClickException(str(exc)) from exc
    finally:
        operations.close()

    click.echo(result.summary())


@main.command()
@click.argument("organization")
@click.argument("space")
@click.pass_context
def target(ctx, organization, space):
    """Check that ORGANIZATION/SPACE can be targeted with the configured credentials."""
    operations, _, target_service = build_runtime(ctx.obj["settings"])
    try:
        info = target_service.target(organization, space)
    except CfPulseError as exc:
        raise click.ClickException(str(exc)) from exc
    finally:
        operations.close()

    click.echo(f"Target OK: {info}")


@main.command()
@click.pass_context
def serve(ctx):
    """Run the MCP server on stdio."""
    operations, cloner, target_service = build_runtime(ctx.obj["settings"])
    server = create_server(CfPulseTools(cloner, target_service))
    logging.getLogger("cfpulse").info("Starting cfpulse MCP server on stdio")
    try:
        server.run()
    finally:
        operations.close()


if __name__ == "__main__":
    main()
