"""Domain value objects."""

from fleet_rbac.domain.value_objects.identity import IdentityContext

__all__ = ["IdentityContext"]
