"""
Backend adapters.

Each adapter performs one family of remote operations against a single
external service and raises the typed errors from `crm_gateway.tools.types`.
"""
