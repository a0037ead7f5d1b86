"""Deployment state machine.

Statuses only move forward::

    pending -> in_progress -> validation_failed -> [database_deploying]
        -> [configuring_ssl] -> app_deploying -> [running_health_checks]
        -> success

Any non-terminal status may fail. A failed deployment may be rolled back.
``validation_failed`` is an intermediate marker set once discovery is done
and is always overwritten by the next stage.
"""

from enum import Enum
from typing import Any

from sitedeploy.core.exceptions import InvalidTransitionError
from sitedeploy.models.deployment import Deployment
from sitedeploy.models.enums import DeploymentStatus as S
from sitedeploy.models.results import utc_now


class DeploymentEvent(str, Enum):
    START = "start"
    VALIDATE = "validate"
    DEPLOY_DATABASE = "deploy_database"
    CONFIGURE_SSL = "configure_ssl"
    DEPLOY_APP = "deploy_app"
    RUN_HEALTH_CHECKS = "run_health_checks"
    SUCCEED = "succeed"
    FAIL = "fail"
    ROLL_BACK = "roll_back"


E = DeploymentEvent

TRANSITIONS: dict[tuple[S, DeploymentEvent], S] = {
    (S.PENDING, E.START): S.IN_PROGRESS,
    (S.IN_PROGRESS, E.VALIDATE): S.VALIDATION_FAILED,
    (S.VALIDATION_FAILED, E.DEPLOY_DATABASE): S.DATABASE_DEPLOYING,
    (S.VALIDATION_FAILED, E.CONFIGURE_SSL): S.CONFIGURING_SSL,
    (S.DATABASE_DEPLOYING, E.CONFIGURE_SSL): S.CONFIGURING_SSL,
    (S.VALIDATION_FAILED, E.DEPLOY_APP): S.APP_DEPLOYING,
    (S.DATABASE_DEPLOYING, E.DEPLOY_APP): S.APP_DEPLOYING,
    (S.CONFIGURING_SSL, E.DEPLOY_APP): S.APP_DEPLOYING,
    (S.APP_DEPLOYING, E.RUN_HEALTH_CHECKS): S.RUNNING_HEALTH_CHECKS,
    (S.APP_DEPLOYING, E.SUCCEED): S.SUCCESS,
    (S.RUNNING_HEALTH_CHECKS, E.SUCCEED): S.SUCCESS,
    (S.FAILED, E.ROLL_BACK): S.ROLLED_BACK,
}

# Every non-terminal status can fail
TRANSITIONS.update({(status, E.FAIL): S.FAILED for status in S if not status.is_terminal})


def transition(
    status: S,
    event: DeploymentEvent,
    allow_success_rollback: bool = False,
) -> S:
    """Return the status reached by applying ``event`` to ``status``.

    Raises:
        InvalidTransitionError: If the table has no such edge
    """
    if allow_success_rollback and (status, event) == (S.SUCCESS, E.ROLL_BACK):
        return S.ROLLED_BACK

    try:
        return TRANSITIONS[(status, event)]
    except KeyError:
        raise InvalidTransitionError(status.value, event.value) from None


def advance(
    deployment: Deployment,
    event: DeploymentEvent,
    allow_success_rollback: bool = False,
    **changes: Any,
) -> Deployment:
    """Apply a transition and field changes, returning a new deployment."""
    status = transition(deployment.status, event, allow_success_rollback)
    return deployment.model_copy(
        update={**changes, "status": status, "updated_at": utc_now()}
    )


def revise(deployment: Deployment, **changes: Any) -> Deployment:
    """Change fields of an in-flight deployment without moving its status.

    Raises:
        InvalidTransitionError: If the deployment is already terminal
    """
    if deployment.status.is_terminal:
        raise InvalidTransitionError(deployment.status.value, "revise")
    return deployment.model_copy(update={**changes, "updated_at": utc_now()})
