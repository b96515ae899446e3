"""Tool server for pg-schema-mcp.

Tools cover read/write queries, schema changes recorded as migrations,
and migration listing, applying, reverting and verification. Each table
is also exposed as a ``postgres://<table>/schema`` resource.
"""

from .app import create_server, run_server
from .context import ServerContext

__all__ = ["ServerContext", "create_server", "run_server"]
