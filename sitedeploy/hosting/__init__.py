"""Hosting engines and the site lifecycle driver."""

from sitedeploy.hosting.appcmd import AppCmdHostingEngine
from sitedeploy.hosting.engine import HostingEngine, InMemoryHostingEngine, PoolRecord, SiteRecord
from sitedeploy.hosting.hosts_file import HostsFileService
from sitedeploy.hosting.lifecycle import EngineReadiness, SiteLifecycleDriver, get_engine_readiness

__all__ = [
    "AppCmdHostingEngine",
    "HostingEngine",
    "InMemoryHostingEngine",
    "PoolRecord",
    "SiteRecord",
    "HostsFileService",
    "EngineReadiness",
    "SiteLifecycleDriver",
    "get_engine_readiness",
]
