"""Custom exceptions for sitedeploy."""

from typing import Any


class SiteDeployError(Exception):
    """Base exception for sitedeploy."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ProfileNotFoundError(SiteDeployError):
    """Deployment profile not found."""

    def __init__(self, profile_id: str):
        super().__init__(
            f"Profile not found: {profile_id}",
            {"profile_id": profile_id},
        )


class DeploymentNotFoundError(SiteDeployError):
    """Deployment record not found."""

    def __init__(self, deployment_id: str):
        super().__init__(
            f"Deployment not found: {deployment_id}",
            {"deployment_id": deployment_id},
        )


class EntityNotFoundError(SiteDeployError):
    """Repository update/delete targeted a missing entity."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            f"{entity} not found: {entity_id}",
            {"entity": entity, "entity_id": entity_id},
        )


class DuplicateEntityError(SiteDeployError):
    """Repository add with an id that is already stored."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            f"{entity} already exists: {entity_id}",
            {"entity": entity, "entity_id": entity_id},
        )


class SourceNotFoundError(SiteDeployError):
    """Application source directory does not exist."""

    def __init__(self, path: str):
        super().__init__(f"Source path not found: {path}", {"path": path})


class EngineInstallationError(SiteDeployError):
    """Hosting engine feature installation failed."""

    def __init__(self, message: str, exit_code: int | None = None, output: str | None = None):
        details: dict[str, Any] = {}
        if exit_code is not None:
            details["exit_code"] = exit_code
        if output:
            details["output"] = output
        super().__init__(f"Hosting engine installation failed: {message}", details)
        self.exit_code = exit_code


class EngineCommandError(SiteDeployError):
    """A hosting engine command exited non-zero."""

    def __init__(self, command: list[str], exit_code: int, output: str = ""):
        super().__init__(
            f"Command failed with exit code {exit_code}: {' '.join(command[:3])}",
            {"command": command, "exit_code": exit_code, "output": output},
        )
        self.command = command
        self.exit_code = exit_code
        self.output = output


class PoolConfigurationError(SiteDeployError):
    """The engine rejected the requested process pool settings."""

    def __init__(self, pool_name: str, reason: str):
        super().__init__(
            f"Process pool '{pool_name}' rejected: {reason}",
            {"pool_name": pool_name},
        )
        self.pool_name = pool_name


class SiteNotFoundError(SiteDeployError):
    """Site does not exist on the hosting engine."""

    def __init__(self, site_name: str):
        super().__init__(f"Site not found: {site_name}", {"site_name": site_name})


class CertificateBindingError(SiteDeployError):
    """Certificate could not be attached to an HTTPS binding."""

    def __init__(self, site_name: str, reason: str):
        super().__init__(
            f"Could not bind certificate to site '{site_name}': {reason}",
            {"site_name": site_name},
        )


class UnsupportedCertificateTypeError(SiteDeployError):
    """No issuance path exists for the certificate type."""

    def __init__(self, certificate_type: str):
        super().__init__(
            f"Certificate type not supported: {certificate_type}",
            {"certificate_type": certificate_type},
        )


class UnsupportedDatabaseProviderError(SiteDeployError):
    """No connection string builder exists for the provider."""

    def __init__(self, provider: str):
        super().__init__(
            f"Database provider not supported: {provider}",
            {"provider": provider},
        )


class InvalidTransitionError(SiteDeployError):
    """A deployment status change not allowed by the state machine."""

    def __init__(self, status: str, event: str):
        super().__init__(
            f"Cannot apply '{event}' to a deployment in status '{status}'",
            {"status": status, "event": event},
        )
        self.status = status
        self.event = event


class DeploymentCancelledError(SiteDeployError):
    """Cancellation was requested and observed at a checkpoint."""

    def __init__(self, stage: str):
        super().__init__(f"Deployment cancelled before {stage}", {"stage": stage})


class CollaboratorUnavailableError(SiteDeployError):
    """A stage needs a collaborator that was not configured."""

    def __init__(self, collaborator: str):
        super().__init__(
            f"No {collaborator} service configured",
            {"collaborator": collaborator},
        )
