import enum
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, FrozenSet, Optional

from .errors import NotAuthenticated, PermissionDenied
from .records import OrderRecord

logger = logging.getLogger("order_security")


class Role(str, enum.Enum):
    CLIENT = "CLIENT"   # places orders and views its own
    ADMIN = "ADMIN"     # views every order


def extract_roles(claims: Any) -> FrozenSet[Role]:
    """Reads ``realm_access.roles`` from decoded token claims.

    Unknown role names are ignored. Any other shape yields an empty set.
    """
    if not isinstance(claims, Mapping):
        return frozenset()
    realm_access = claims.get("realm_access")
    if not isinstance(realm_access, Mapping):
        return frozenset()
    names = realm_access.get("roles")
    if not isinstance(names, (list, tuple)):
        return frozenset()

    known = {role.value for role in Role}
    return frozenset(
        Role(name.upper()) for name in names if isinstance(name, str) and name.upper() in known
    )


@dataclass(frozen=True)
class Principal:
    requester_id: str
    roles: FrozenSet[Role] = frozenset()

    def has_role(self, role: Role) -> bool:
        return role in self.roles


def principal_from_headers(user_id: Optional[str], raw_claims: Optional[str]) -> Principal:
    """Builds the caller identity forwarded by the gateway.

    The gateway has already authenticated the token; it passes the subject as
    ``X-User-Id`` and the decoded claims as JSON in ``X-User-Claims``.
    """
    if not user_id or not user_id.strip():
        raise NotAuthenticated("Missing authenticated user")

    claims = None
    if raw_claims:
        try:
            claims = json.loads(raw_claims)
        except ValueError:
            logger.warning(f"Unreadable claims for user {user_id}, granting no roles")
    return Principal(requester_id=user_id.strip(), roles=extract_roles(claims))


def require_role(principal: Principal, role: Role) -> None:
    if not principal.has_role(role):
        raise PermissionDenied(f"Role {role.value} required", {"required_role": role.value})


def require_order_access(principal: Principal, order: OrderRecord) -> None:
    """An order is visible to its requester and to administrators."""
    if principal.has_role(Role.ADMIN) or order.requester_id == principal.requester_id:
        return
    raise PermissionDenied(f"Not allowed to view order {order.id}", {"order_id": order.id})
