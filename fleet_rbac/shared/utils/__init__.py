"""Small stateless helpers (time, identifiers)."""

from fleet_rbac.shared.utils.datetime import days_from_now, ensure_utc, utc_now
from fleet_rbac.shared.utils.generators import generate_cuid

__all__ = ["days_from_now", "ensure_utc", "generate_cuid", "utc_now"]
