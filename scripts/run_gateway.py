"""
Start the MCP stdio server.

Run:
  python scripts/run_gateway.py

Equivalent to the `crm-gateway` console script.
"""

from crm_gateway.server.mcp_server import main


if __name__ == "__main__":
    main()
