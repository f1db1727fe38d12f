"""
CRM tool gateway.

Exposes customer-record and scheduling operations as validated tools and
routes them to Google Sheets and Calendly.
"""

__version__ = "0.1.0"
