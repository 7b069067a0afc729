"""Microsoft Graph authentication and API-call helpers for the tutorial app."""

__version__ = "0.1.0"
