"""MCP tool surface over the clone pipeline and target management."""

import logging
from typing import Optional

import anyio
from mcp.server.fastmcp import FastMCP

logger = logging.getLogger("cfpulse.server")


class CfPulseTools:
    """Plain-text tool handlers; every failure propagates to the caller."""

    def __init__(self, cloner, target_service):
        self.cloner = cloner
        self.target_service = target_service

    def clone_app(
        self,
        source_app: str,
        target_app: str,
        organization: Optional[str] = None,
        space: Optional[str] = None,
    ) -> str:
        result = self.cloner.clone(source_app, target_app, organization=organization, space=space)
        return result.summary()

    def target_cf(self, organization: str, space: str) -> str:
        info = self.target_service.target(organization, space)
        return f"Default target set to {info}."

    def get_current_target(self) -> str:
        info = self.target_service.current_target()
        if not info.is_configured:
            return f"No complete target configured ({info})."
        return f"Current target: {info}."

    def clear_target(self) -> str:
        info = self.target_service.clear_target()
        return f"Target cleared; using configuration defaults ({info})."


def create_server(tools: CfPulseTools) -> FastMCP:
    server = FastMCP("cfpulse")

    @server.tool()
    async def clone_app(
        source_app: str,
        target_app: str,
        organization: Optional[str] = None,
        space: Optional[str] = None,
    ) -> str:
        """Clone a Cloud Foundry application into a new app with the same buildpack,
        sizing and environment variables. Organization and space default to the current target."""
        logger.info("Tool call: clone_app %s -> %s", source_app, target_app)
        return await anyio.to_thread.run_sync(
            lambda: tools.clone_app(source_app, target_app, organization, space)
        )

    @server.tool()
    async def target_cf(organization: str, space: str) -> str:
        """Set the default organization and space used by subsequent operations."""
        return await anyio.to_thread.run_sync(lambda: tools.target_cf(organization, space))

    @server.tool()
    def get_current_target() -> str:
        """Report the current default organization and space."""
        return tools.get_current_target()

    @server.tool()
    def clear_target() -> str:
        """Revert the default organization and space to the configured values."""
        return tools.clear_target()

    return server
