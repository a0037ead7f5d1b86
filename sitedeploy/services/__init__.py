"""Default collaborator implementations."""

from sitedeploy.services.audit import StructlogAuditService
from sitedeploy.services.cloud import MetadataCloudService
from sitedeploy.services.deployment_log import StructlogDeploymentLogger
from sitedeploy.services.discovery import MarkerFileDiscoveryService
from sitedeploy.services.health import HttpHealthCheckService

__all__ = [
    "StructlogAuditService",
    "MetadataCloudService",
    "StructlogDeploymentLogger",
    "MarkerFileDiscoveryService",
    "HttpHealthCheckService",
]
