"""
Wiring: builds adapters and orchestrators from one Settings instance.
"""

from dataclasses import dataclass
from typing import Optional

from wpsite.adapters import CmsAdapter, DatabaseAdapter, FilesystemAdapter, WebServerAdapter
from wpsite.config import Settings
from wpsite.core.decommission import Decommissioner
from wpsite.core.preconditions import PreconditionChecker
from wpsite.core.provision import Provisioner
from wpsite.report import SiteInspector
from wpsite.transport import LocalTransport, Transport


@dataclass
class Toolkit:
    """Every component of one invocation, sharing one Settings and Transport."""
    settings: Settings
    transport: Transport
    filesystem: FilesystemAdapter
    webserver: WebServerAdapter
    database: DatabaseAdapter
    cms: CmsAdapter

    @property
    def checker(self) -> PreconditionChecker:
        return PreconditionChecker(self.filesystem, self.webserver, self.database, self.cms)

    @property
    def provisioner(self) -> Provisioner:
        return Provisioner(
            self.settings, self.filesystem, self.webserver, self.database, self.cms,
            checker=self.checker,
        )

    @property
    def decommissioner(self) -> Decommissioner:
        return Decommissioner(self.settings, self.filesystem, self.webserver, self.database)

    @property
    def inspector(self) -> SiteInspector:
        return SiteInspector(
            self.settings, self.filesystem, self.webserver, self.database, self.cms
        )


def build_toolkit(settings: Settings, transport: Optional[Transport] = None) -> Toolkit:
    """
    Build the default component set.

    Args:
        settings: Runtime configuration
        transport: Command runner (default: LocalTransport with the
            configured command timeout)
    """
    if transport is None:
        transport = LocalTransport(default_timeout=settings.command_timeout)

    return Toolkit(
        settings=settings,
        transport=transport,
        filesystem=FilesystemAdapter(settings),
        webserver=WebServerAdapter(settings, transport),
        database=DatabaseAdapter(settings, transport=transport),
        cms=CmsAdapter(settings, transport),
    )
