"""Enumerations shared by the deployment models."""

from enum import Enum


class DeploymentStatus(str, Enum):
    """Deployment processing status."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    VALIDATION_FAILED = "validation_failed"
    DATABASE_DEPLOYING = "database_deploying"
    CONFIGURING_SSL = "configuring_ssl"
    APP_DEPLOYING = "app_deploying"
    RUNNING_HEALTH_CHECKS = "running_health_checks"
    SUCCESS = "success"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"

    @property
    def is_terminal(self) -> bool:
        return self in (
            DeploymentStatus.SUCCESS,
            DeploymentStatus.FAILED,
            DeploymentStatus.ROLLED_BACK,
        )


class DeploymentTarget(str, Enum):
    """Platform the application is published to."""

    LOCAL_IIS = "local_iis"
    LOCAL_IIS_EXPRESS = "local_iis_express"
    AZURE_APP_SERVICE = "azure_app_service"
    AZURE_VM = "azure_vm"
    AWS_EC2 = "aws_ec2"
    GOOGLE_CLOUD_VM = "google_cloud_vm"
    ON_PREMISE_WINDOWS = "on_premise_windows"
    DOCKER = "docker"
    KUBERNETES = "kubernetes"

    @property
    def is_cloud_vm(self) -> bool:
        return self in (
            DeploymentTarget.AZURE_VM,
            DeploymentTarget.AWS_EC2,
            DeploymentTarget.GOOGLE_CLOUD_VM,
        )


class DeploymentEnvironment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"
    LOCAL = "local"


class DeploymentStrategy(str, Enum):
    """How the running site is replaced."""

    STOP_AND_DEPLOY = "stop_and_deploy"
    BLUE_GREEN = "blue_green"
    CANARY = "canary"
    ROLLING = "rolling"
    IN_PLACE = "in_place"


class ApplicationType(str, Enum):
    ASPNET_CORE_MVC = "aspnet_core_mvc"
    ASPNET_CORE_RAZOR = "aspnet_core_razor"
    ASPNET_CORE_BLAZOR_SERVER = "aspnet_core_blazor_server"
    ASPNET_CORE_BLAZOR_WASM = "aspnet_core_blazor_wasm"
    ASPNET_CORE_WEB_API = "aspnet_core_web_api"
    ASPNET_FRAMEWORK_MVC = "aspnet_framework_mvc"
    ASPNET_FRAMEWORK_WEB_FORMS = "aspnet_framework_web_forms"
    STATIC_WEBSITE = "static_website"
    NODEJS = "nodejs"
    UNKNOWN = "unknown"


class RuntimeVersion(str, Enum):
    """Managed runtime loaded into the process pool."""

    NO_MANAGED_CODE = ""
    V2_0 = "v2.0"
    V4_0 = "v4.0"


class PipelineMode(str, Enum):
    CLASSIC = "Classic"
    INTEGRATED = "Integrated"


class CertificateType(str, Enum):
    SELF_SIGNED = "self_signed"
    LETS_ENCRYPT = "lets_encrypt"
    INTERNAL_CA = "internal_ca"
    AZURE_KEY_VAULT = "azure_key_vault"
    CUSTOM_CERTIFICATE = "custom_certificate"


class DatabaseProvider(str, Enum):
    NONE = "none"
    SQL_SERVER_LOCAL_DB = "sql_server_local_db"
    SQL_SERVER_EXPRESS = "sql_server_express"
    SQL_SERVER = "sql_server"
    AZURE_SQL_DATABASE = "azure_sql_database"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"
    MONGODB = "mongodb"
    COSMOS_DB = "cosmos_db"


class CloudProvider(str, Enum):
    NONE = "none"
    AZURE = "azure"
    AWS = "aws"
    GOOGLE_CLOUD = "google_cloud"


class LogLevel(str, Enum):
    """Severity of a deployment log entry."""

    TRACE = "trace"
    DEBUG = "debug"
    INFORMATION = "information"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class HealthCheckStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


class AuditEventType(str, Enum):
    DEPLOYMENT_STARTED = "deployment_started"
    DEPLOYMENT_COMPLETED = "deployment_completed"
    DEPLOYMENT_FAILED = "deployment_failed"
    DEPLOYMENT_ROLLED_BACK = "deployment_rolled_back"
    BACKUP_CREATED = "backup_created"
    BACKUP_RESTORED = "backup_restored"
    CERTIFICATE_INSTALLED = "certificate_installed"
