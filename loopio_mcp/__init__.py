"""Loopio MCP Server.

An MCP server that exposes the Loopio RFP content API as tools for an agent,
with automatic OAuth2 client-credentials token management.

Architecture:
- TokenManager acquires the access token at startup and refreshes it every
  59 minutes in the background
- LoopioAPIClient executes declarative endpoints with the current token
- Tools are table-driven: input model + endpoint + result formatting

Run with:
    loopio-mcp                      # stdio
    loopio-mcp --transport http     # FastAPI + streamable HTTP at /mcp
"""
from .main import (
    main,
    serve,
    build_server,
    create_app,
)
from .config import LoopioConfig, ConfigurationError
from .token_manager import TokenManager, TokenAcquisitionError
from .api_client import LoopioAPIClient, ApiRequestError, TransportError
from .endpoints import Endpoint, QueryParam
from .tools import TOOLS, ToolSpec, register_tools

__all__ = [
    # Server
    "main",
    "serve",
    "build_server",
    "create_app",
    # Configuration
    "LoopioConfig",
    "ConfigurationError",
    # Token management
    "TokenManager",
    "TokenAcquisitionError",
    # API client
    "LoopioAPIClient",
    "ApiRequestError",
    "TransportError",
    "Endpoint",
    "QueryParam",
    # Tools
    "TOOLS",
    "ToolSpec",
    "register_tools",
]
