"""
Resource adapters.

One adapter per external resource. Forward operations raise AdapterError on
failure; inverse operations return False when the resource was already
absent.
"""

from wpsite.adapters.filesystem import FilesystemAdapter, DirectoryStats
from wpsite.adapters.hosts import HostsFile
from wpsite.adapters.webserver import WebServerAdapter
from wpsite.adapters.database import DatabaseAdapter, quote_identifier
from wpsite.adapters.cms import CmsAdapter

__all__ = [
    "FilesystemAdapter",
    "DirectoryStats",
    "HostsFile",
    "WebServerAdapter",
    "DatabaseAdapter",
    "quote_identifier",
    "CmsAdapter",
]
