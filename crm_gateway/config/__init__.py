from crm_gateway.config.adapters import (
    SchedulingConfig,
    SpreadsheetConfig,
    build_scheduling_config,
    build_spreadsheet_config,
)
from crm_gateway.config.settings import Settings, get_settings

__all__ = [
    "SchedulingConfig",
    "Settings",
    "SpreadsheetConfig",
    "build_scheduling_config",
    "build_spreadsheet_config",
    "get_settings",
]
