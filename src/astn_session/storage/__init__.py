"""Storage modules for the ASTN session layer."""

from astn_session.storage.base import BaseStorage, get_data_dir
from astn_session.storage.session import SNAPSHOT_SCHEMA_VERSION, SessionStorage

__all__ = [
    "BaseStorage",
    "get_data_dir",
    "SessionStorage",
    "SNAPSHOT_SCHEMA_VERSION",
]
