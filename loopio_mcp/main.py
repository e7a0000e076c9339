"""Loopio MCP Server.

An MCP server exposing the Loopio RFP content API (library entries, projects,
sections, compliance sets, custom fields, files) as tools for an agent.

Architecture:
- TokenManager acquires an OAuth2 client-credentials token at startup and
  refreshes it in the background every 59 minutes
- LoopioAPIClient sends every request with the current bearer token
- Tools are declared in a table and registered with FastMCP

Two deployments share the same server:
- stdio (default), for desktop MCP clients
- streamable HTTP, a FastAPI app with /health and the MCP endpoint at /mcp

Run with:
    loopio-mcp
    loopio-mcp --transport http --port 8002

Or:
    python -m loopio_mcp.main
"""
import argparse
import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mcp.server.fastmcp import FastMCP
from starlette.routing import Mount

from .config import LoopioConfig, ConfigurationError, LOG_LEVEL
from .token_manager import TokenManager, TokenAcquisitionError
from .api_client import LoopioAPIClient
from .tools import register_tools


# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,  # MCP servers should log to stderr, not stdout
)
logger = logging.getLogger(__name__)


# ==============================================================================
# MCP Server
# ==============================================================================

def build_server(api_client: LoopioAPIClient, token_manager: TokenManager) -> FastMCP:
    """Create the FastMCP server with every Loopio tool bound to ``api_client``.

    The streamable HTTP app is served at /mcp/streamable once mounted at /mcp.
    """
    mcp = FastMCP(
        "loopio_mcp",
        stateless_http=True,
        streamable_http_path="/streamable",
    )
    register_tools(mcp, api_client, token_manager)
    return mcp


# ==============================================================================
# HTTP Application (FastAPI + MCP)
# ==============================================================================

def create_app(mcp: FastMCP, token_manager: TokenManager) -> FastAPI:
    """Wrap the MCP server in a FastAPI app with a health endpoint."""

    @asynccontextmanager
    async def app_lifespan(app: FastAPI):
        # MCP's session manager must run for the streamable HTTP transport
        async with mcp.session_manager.run():
            yield

    app = FastAPI(
        title="Loopio MCP Server",
        description=(
            "MCP endpoint exposing the Loopio RFP content API.\n\n"
            "- **MCP Endpoint**: `/mcp/streamable` - Agent tool access via Model Context Protocol\n"
            "- **Health**: `/health` - Liveness and access token status"
        ),
        version="1.0.0",
        lifespan=app_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {
            "status": "ok",
            "service": "loopio-mcp",
            "token": token_manager.status(),
        }

    app.routes.append(Mount("/mcp", app=mcp.streamable_http_app()))
    return app


# ==============================================================================
# Server Lifecycle
# ==============================================================================

async def serve(
    config: LoopioConfig,
    transport: str = "stdio",
    host: str = "0.0.0.0",
    port: int = 8002,
) -> None:
    """Acquire the initial token, start auto refresh and run the MCP server.

    The refresh timer and HTTP clients are released on every exit path,
    including a failed initial token fetch.

    Raises:
        TokenAcquisitionError: If the initial access token cannot be fetched
    """
    async with TokenManager(config) as token_manager:
        api_client = LoopioAPIClient(config, token_manager)
        try:
            logger.info("[Server] Fetching initial access token...")
            await token_manager.acquire_token()
            token_manager.start_auto_refresh()

            mcp = build_server(api_client, token_manager)

            if transport == "http":
                import uvicorn

                app = create_app(mcp, token_manager)
                logger.info(f"[Server] Starting on {host}:{port}")
                logger.info(f"[Server] MCP Endpoint: http://{host}:{port}/mcp/streamable")
                server = uvicorn.Server(uvicorn.Config(app, host=host, port=port))
                await server.serve()
            else:
                logger.info("[Server] Loopio MCP Server (STDIO mode) started")
                await mcp.run_stdio_async()
        finally:
            logger.info("[Server] Shutting down...")
            await api_client.close()


# ==============================================================================
# Entry Point
# ==============================================================================

def main(argv: Optional[list[str]] = None) -> int:
    """Run the server. Returns the process exit code."""
    parser = argparse.ArgumentParser(description="Loopio MCP Server")
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default="stdio",
        help="MCP transport (default: stdio)"
    )
    parser.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
        help="Host to bind to in http mode (default: 0.0.0.0)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8002,
        help="Port to bind to in http mode (default: 8002)"
    )

    args = parser.parse_args(argv)

    try:
        config = LoopioConfig.from_env()
    except ConfigurationError as e:
        logger.error(f"[Server] ERROR: {e}")
        return 1

    try:
        asyncio.run(serve(config, args.transport, args.host, args.port))
    except TokenAcquisitionError as e:
        logger.error(f"[Server] Could not fetch initial access token: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("[Server] Interrupted")
    except Exception as e:
        logger.error(f"[Server] Server error: {e}", exc_info=True)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
