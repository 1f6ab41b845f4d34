# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Permission Evaluation and Security Event Logging

WHY: One evaluator decides every (operation, actor, ownership) question,
so the authorization matrix in storerating.permissions stays auditable
in a single place instead of being scattered through routes.

DESIGN PRINCIPLES:
- Fail closed: unknown operations raise, unknown roles get nothing
- Two distinct denials: Unauthorized (no session) vs Forbidden
  (authenticated, insufficient role or not the owner)
- Log denials only: permission grants are not logged
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import Forbidden, Unauthorized
from ..extensions import db
from ..models import Role, SecurityEvent, User
from ..permissions import (
    ANONYMOUS,
    DEFAULT_ROLE_PERMISSIONS,
    OWNERSHIP_DENIAL_MESSAGES,
    ROLE_DENIAL_MESSAGES,
    OwnershipRule,
    get_ownership_rule,
)
from ..time_utils import utcnow

@dataclass(frozen=True)
class Decision:
    """Outcome of evaluate(); `denial` is None when allowed."""
    allowed: bool
    denial: type[Unauthorized] | type[Forbidden] | None = None
    reason: str | None = None

ALLOW = Decision(allowed=True)

def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    WHY: Immutable audit log for security monitoring.

    event_type examples:
    - PERMISSION_DENIED
    - LOGIN_FAILED
    - LOGIN_SUCCESS
    - LOGOUT
    - USER_CREATED
    - USER_DELETED
    - ROLE_CHANGED
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event

def get_role_permissions(role: Role | str) -> frozenset[str]:
    """Operation codes granted to a role (or ANONYMOUS)."""
    return DEFAULT_ROLE_PERMISSIONS.get(role, frozenset())

def evaluate(
    operation: str,
    actor: User | None,
    *,
    owner_id: int | None = None,
    check_ownership: bool = True,
) -> Decision:
    """
    Decide whether `actor` may perform `operation`.

    actor=None is the anonymous caller. owner_id is the id of the user who
    owns the target resource (rating author, store owner, profile whose
    ratings are listed). With check_ownership=False only the role gate is
    evaluated; route decorators use that before the resource is loaded.
    """
    rule = get_ownership_rule(operation)

    if actor is None:
        if operation in get_role_permissions(ANONYMOUS):
            return ALLOW
        return Decision(False, Unauthorized, "Authentication required")

    if operation not in get_role_permissions(actor.role):
        return Decision(
            False,
            Forbidden,
            ROLE_DENIAL_MESSAGES.get(operation, "Access denied. Insufficient permissions."),
        )

    if not check_ownership or rule == OwnershipRule.NONE:
        return ALLOW

    is_owner = owner_id is not None and owner_id == actor.id
    if rule == OwnershipRule.OWNER_OR_ADMIN and actor.role == Role.ADMIN:
        return ALLOW
    if is_owner:
        return ALLOW

    return Decision(
        False,
        Forbidden,
        OWNERSHIP_DENIAL_MESSAGES.get(operation, "Access denied"),
    )

def check(
    operation: str,
    actor: User | None,
    *,
    owner_id: int | None = None,
    check_ownership: bool = True,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Require permission, raising Unauthorized or Forbidden if denied.

    Forbidden denials are written to security_events (anonymous 401s are
    not; they carry no identity worth auditing).

    Usage:
        check(MODIFY_RATING, g.current_user, owner_id=rating.user_id, resource=request.path)
    """
    decision = evaluate(operation, actor, owner_id=owner_id, check_ownership=check_ownership)
    if decision.allowed:
        return

    if decision.denial is Forbidden:
        log_security_event(
            user_id=actor.id if actor else None,
            event_type="PERMISSION_DENIED",
            success=False,
            resource=resource,
            action=operation,
            reason=decision.reason,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    raise decision.denial(decision.reason)
