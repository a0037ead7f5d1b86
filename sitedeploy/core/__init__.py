"""Core functionality for sitedeploy.

The orchestrator is imported from ``sitedeploy.core.orchestrator``
directly; it depends on the hosting package, which depends on this one.
"""

from sitedeploy.core.events import Event, EventBus, get_event_bus
from sitedeploy.core.exceptions import (
    CertificateBindingError,
    CollaboratorUnavailableError,
    DeploymentCancelledError,
    DeploymentNotFoundError,
    DuplicateEntityError,
    EngineCommandError,
    EngineInstallationError,
    EntityNotFoundError,
    InvalidTransitionError,
    PoolConfigurationError,
    ProfileNotFoundError,
    SiteDeployError,
    SiteNotFoundError,
    SourceNotFoundError,
    UnsupportedCertificateTypeError,
    UnsupportedDatabaseProviderError,
)
from sitedeploy.core.locks import TargetLocks
from sitedeploy.core.repository import DeploymentRepository, InMemoryRepository, ProfileRepository
from sitedeploy.core.state import DeploymentEvent, advance, revise, transition

__all__ = [
    "Event",
    "EventBus",
    "get_event_bus",
    "CertificateBindingError",
    "CollaboratorUnavailableError",
    "DeploymentCancelledError",
    "DeploymentNotFoundError",
    "DuplicateEntityError",
    "EngineCommandError",
    "EngineInstallationError",
    "EntityNotFoundError",
    "InvalidTransitionError",
    "PoolConfigurationError",
    "ProfileNotFoundError",
    "SiteDeployError",
    "SiteNotFoundError",
    "SourceNotFoundError",
    "UnsupportedCertificateTypeError",
    "UnsupportedDatabaseProviderError",
    "TargetLocks",
    "DeploymentRepository",
    "InMemoryRepository",
    "ProfileRepository",
    "DeploymentEvent",
    "advance",
    "revise",
    "transition",
]
