__version__ = "0.1.0"

from wpsite.config import Settings
from wpsite.core import (
    SiteRequest,
    SiteInfo,
    SiteError,
    Provisioner,
    Decommissioner,
)
from wpsite.factory import Toolkit, build_toolkit
from wpsite.logging import get_logger, get_site_logger, setup_logging

"""
Foundations of wpsite:
    Settings holds paths, service names and the database connection.
    SiteRequest is a validated request to create one site.
    Provisioner creates a site as an all-or-nothing sequence of steps.
    Decommissioner removes a site from every resource, best effort.
    build_toolkit wires adapters and orchestrators from one Settings.
"""

__all__ = [
    "Settings",
    "SiteRequest",
    "SiteInfo",
    "SiteError",
    "Provisioner",
    "Decommissioner",
    "Toolkit",
    "build_toolkit",
    "get_logger",
    "get_site_logger",
    "setup_logging",
]
