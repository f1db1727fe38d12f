"""
Startup diagnostics.

Prints the configuration an operator needs to copy (spreadsheet id,
service-account email to share the sheet with, organization URI) without
putting secrets in terminal history or logs. Credential fields are only
ever rendered through `CredentialDescriptor.masked`.

Not used on the dispatch path.
"""

from __future__ import annotations

from crm_gateway.config.adapters import SchedulingConfig, SpreadsheetConfig
from crm_gateway.security import CredentialDescriptor


_NOT_SET = "(not set)"


def _value(value: object) -> str:
    text = "" if value is None else str(value)
    return text or _NOT_SET


def _credential(cred: CredentialDescriptor) -> str:
    if not cred.is_set:
        return f"{_NOT_SET}  [{cred.source_label}]"
    return f"{cred.masked}  [{cred.source_label}]"


def _block(title: str, rows: list[tuple[str, str]]) -> list[str]:
    width = max(len(label) for label, _ in rows)
    lines = [f"  {title}"]
    lines.extend(f"    {label.ljust(width)} : {value}" for label, value in rows)
    return lines


def describe_spreadsheet(config: SpreadsheetConfig) -> list[str]:
    path = config.credentials_path
    if path is None:
        path_text = _NOT_SET
    else:
        path_text = f"{path} ({'found' if path.is_file() else 'missing'})"

    return _block(
        "Spreadsheet (Google Sheets)",
        [
            ("credentials file", path_text),
            ("spreadsheet id", _value(config.spreadsheet_id)),
            ("sheet range", _value(config.sheet_range)),
            ("project id", _value(config.project_id)),
            ("service account", _value(config.service_account_email)),
        ],
    )


def describe_scheduling(config: SchedulingConfig) -> list[str]:
    return _block(
        "Scheduling (Calendly)",
        [
            ("api token", _credential(config.api_token)),
            ("organization uri", _value(config.organization_uri)),
            ("base url", _value(config.base_url)),
            ("page size", str(config.page_size)),
            ("max pages", str(config.max_pages)),
        ],
    )


def describe(
    spreadsheet: SpreadsheetConfig | None = None,
    scheduling: SchedulingConfig | None = None,
) -> str:
    lines = ["CRM gateway configuration"]
    if spreadsheet is not None:
        lines.extend(describe_spreadsheet(spreadsheet))
    if scheduling is not None:
        lines.extend(describe_scheduling(scheduling))
    if spreadsheet and spreadsheet.service_account_email:
        lines.append("")
        lines.append(
            "  Share the spreadsheet with the service account above (Editor access)."
        )
    return "\n".join(lines)
