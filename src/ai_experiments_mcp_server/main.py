"""
Main entry point for the AI Experiments MCP Server.

This module provides the command-line interface for the MCP server,
handling startup and configuration.
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
import structlog

from .config.settings import ConfigurationError, load_config
from .server import AIExperimentsMCPServer
from .utils.logging import setup_logging


@click.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set logging level",
)
@click.option("--host", help="Interface to listen on")
@click.option("--port", type=int, help="Port to listen on")
def serve(
    config: Optional[Path] = None,
    log_level: Optional[str] = None,
    host: Optional[str] = None,
    port: Optional[int] = None,
) -> None:
    """
    Serve MCP tools, resources and prompts over HTTP+SSE.

    Hosts connect to the event stream endpoint (default /sse) and post
    messages to the endpoint it announces.
    """
    try:
        config_data = load_config(config_path=config)
    except (ConfigurationError, FileNotFoundError) as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    if log_level:
        config_data.server.log_level = log_level.upper()
    if host:
        config_data.server.host = host
    if port:
        config_data.server.port = port

    setup_logging(
        config_data.server.log_level,
        json_logs=config_data.environment != "development",
    )
    logger = structlog.get_logger()

    logger.info(
        "Starting AI Experiments MCP Server",
        version=config_data.version,
        environment=config_data.environment,
        config_file=str(config) if config else "environment",
        log_level=config_data.server.log_level,
    )

    try:
        server = AIExperimentsMCPServer(config_data)
        asyncio.run(server.run())
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
    except Exception as e:
        logger.error("Server failed", error=str(e), exc_info=True)
        sys.exit(1)


@click.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(path_type=Path),
    help="Path to save configuration file",
)
def init_config(config: Optional[Path] = None) -> None:
    """Initialize a configuration file with default settings."""
    from .config.settings import create_default_config

    config_path = config or Path("config.json")

    if config_path.exists():
        click.echo(f"Configuration file already exists: {config_path}")
        if not click.confirm("Overwrite?"):
            return

    try:
        create_default_config(config_path)
        click.echo(f"Created configuration file: {config_path}")
        click.echo("\nNext steps:")
        click.echo("1. Set environment variables:")
        click.echo("   export MCP_SECRET='your-backend-secret'")
        click.echo("   export AI_EXPERIMENTS_SERVER_URL='https://your-backend'")
        click.echo("   NODE_ENV and NODE_AI_EXPERIMENTS_SERVER_URL still work as fallbacks")
        click.echo("2. Start the server:")
        click.echo(f"   ai-experiments-mcp-server serve --config {config_path}")
    except OSError as e:
        click.echo(f"Failed to create configuration file: {e}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(package_name="ai-experiments-mcp-server")
def cli() -> None:
    """AI Experiments MCP Server CLI."""
    pass


cli.add_command(serve, name="serve")
cli.add_command(init_config, name="init")


if __name__ == "__main__":
    cli()
