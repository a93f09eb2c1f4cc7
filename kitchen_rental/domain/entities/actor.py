"""The verified caller of an operation, as supplied by the identity layer."""

from dataclasses import dataclass
from enum import Enum


class ActorRole(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    LOGISTICS = "logistics"


OPERATOR_ROLES = frozenset({ActorRole.ADMIN, ActorRole.LOGISTICS})


@dataclass(frozen=True)
class Actor:
    actor_id: str
    role: ActorRole

    @property
    def is_operator(self) -> bool:
        return self.role in OPERATOR_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN

    def owns(self, customer_id: str) -> bool:
        return str(self.actor_id) == str(customer_id)

    def can_access(self, customer_id: str) -> bool:
        return self.is_operator or self.owns(customer_id)
