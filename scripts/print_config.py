"""
Print the gateway configuration with secrets masked.

Run:
  python scripts/print_config.py

Use it to copy the spreadsheet id, the service-account email to share the
sheet with, and the Calendly organization URI.
"""

from __future__ import annotations

from crm_gateway.config import (
    build_scheduling_config,
    build_spreadsheet_config,
    get_settings,
)
from crm_gateway.diagnostics import describe


def main() -> None:
    s = get_settings()
    print(describe(build_spreadsheet_config(s), build_scheduling_config(s)))


if __name__ == "__main__":
    main()
