"""
dotnetdc MCP server.

Decompiles .NET assemblies with ILSpyCmd and serves the results, split by
namespace and type, over the Model Context Protocol on stdio.
"""

import logging

from fastmcp import FastMCP

from dotnetdc.tools.dotnet_tools import register_dotnet_tools
from dotnetdc.utils.config import PACKAGE_VERSION, SERVER_NAME, get_config

# Configure logging (stderr; stdout carries the protocol)
logging.basicConfig(
    level=getattr(logging, (get_config("DOTNETDC_LOG_LEVEL", "INFO") or "INFO").upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastMCP(SERVER_NAME)


def main():
    """Run the MCP server."""
    logger.info(f"Starting MCP .NET Decompiler Server v{PACKAGE_VERSION}...")

    register_dotnet_tools(app)

    logger.info("Running on stdio")

    # Run the FastMCP server (handles stdio automatically)
    app.run()


if __name__ == "__main__":
    main()
