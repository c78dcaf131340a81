"""CLI tools for the ASTN session layer."""

from astn_session.cli.session_status import main as session_status_main

__all__ = [
    "session_status_main",
]
