"""
Precondition checks run before any mutation.
"""

from typing import List

from wpsite.core.errors import ConflictError, UnavailableError
from wpsite.core.models import HealthStatus
from wpsite.logging import get_site_logger

logger = get_site_logger(__name__)


class PreconditionChecker:
    """
    Verifies a site can be created.

    check_available() stops at the first conflict; check_dependencies()
    reports every missing dependency at once, since an operator usually
    fixes them in one go.
    """

    def __init__(self, filesystem, webserver, database, cms):
        self.filesystem = filesystem
        self.webserver = webserver
        self.database = database
        self.cms = cms

    def check_available(self, site_id: str) -> None:
        """
        Raises:
            ConflictError: Naming the first resource that already holds the site
        """
        path = self.filesystem.site_path(site_id)
        if self.filesystem.exists(path) and not self.filesystem.dir_empty(path):
            raise ConflictError(
                "directory", f"Site directory {path} already exists and is not empty"
            )

        if self.webserver.config_exists(site_id):
            raise ConflictError(
                "vhost config",
                f"Apache configuration {self.webserver.config_path(site_id)} already exists",
            )

        if self.webserver.hosts_entry_exists(site_id):
            raise ConflictError(
                "hosts entry",
                f"Hosts entry for {self.webserver.settings.site_domain(site_id)} already exists",
            )

    def check_database_available(self, db_name: str, db_user: str) -> None:
        """
        Raises:
            ConflictError: If the database or the database user exists
        """
        if self.database.database_exists(db_name):
            raise ConflictError("database", f"Database '{db_name}' already exists")

        if self.database.user_exists(db_user):
            raise ConflictError("database user", f"Database user '{db_user}' already exists")

    def probe_all(self) -> List[HealthStatus]:
        return [
            self.filesystem.probe(),
            self.webserver.probe(),
            self.database.probe(),
            self.cms.probe(),
        ]

    def check_dependencies(self) -> None:
        """
        Raises:
            UnavailableError: Listing every unavailable dependency
        """
        missing = [status for status in self.probe_all() if not status.available]
        for status in missing:
            logger.error("%s unavailable: %s", status.component, ", ".join(status.reasons))
        if missing:
            raise UnavailableError(missing)
