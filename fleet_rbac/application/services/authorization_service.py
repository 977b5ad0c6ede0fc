"""Permission evaluation engine: effective permission sets and access decisions.

The engine unions the permission sets of a user's currently valid
assignments (active AND unexpired AND in the tenant) whose roles are
active. Expiry is filtered at read time, so an expired assignment stops
counting before the sweep deactivates it.

Consistency is eventual, not strict: a read racing an uncommitted revoke
may see the pre-revoke state. Write paths invalidate the cached set when
they change it and, when the engine is given an after_commit scheduler,
once more after the transaction commits, so a set cached from pre-commit
rows does not outlive the commit.

Denials are normal boolean outcomes. Only malformed input (missing user or
tenant) raises, with InvalidIdentityContextException, which callers treat as
a hard deny. The require_* guards raise AuthorizationException.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime
from typing import Any

from fleet_rbac.application.dtos.permission import UserPermissionsResult
from fleet_rbac.application.interfaces.repositories import (
    IAssignmentRepository,
    IRoleRepository,
)
from fleet_rbac.application.interfaces.services import ICacheService
from fleet_rbac.domain.entities.role import RoleEntity
from fleet_rbac.domain.enums import AccessLevel, RoleType
from fleet_rbac.domain.exceptions import (
    AuthorizationException,
    InvalidIdentityContextException,
    ValidationException,
)
from fleet_rbac.domain.permissions import Permission, group_permissions
from fleet_rbac.domain.role_types import access_level_for
from fleet_rbac.domain.value_objects.identity import IdentityContext
from fleet_rbac.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)

AND = "AND"
OR = "OR"

# Schedules an async callback to run once the current write transaction commits.
AfterCommit = Callable[[Callable[[], Awaitable[Any]]], None]


def permission_cache_key(tenant_id: str, user_id: str) -> str:
    return f"permission:{tenant_id}:{user_id}"


def parse_expression(expression: str) -> tuple[str, list[str]]:
    """Split a homogeneous expression into (operator, codes).

    Accepts ``code``, ``a AND b AND c`` or ``a OR b``. Operators are
    upper-case words separated by whitespace. Mixed operators, parentheses
    and empty operands raise ValidationException.
    """
    text = (expression or "").strip()
    if not text:
        raise ValidationException("Permission expression is empty", field="expression")
    if "(" in text or ")" in text:
        raise ValidationException(
            "Parenthesized permission expressions are not supported",
            field="expression",
        )
    tokens = text.split()
    codes = tokens[0::2]
    operators = set(tokens[1::2])
    if len(tokens) % 2 == 0 or any(code in (AND, OR) for code in codes):
        raise ValidationException(
            f"Malformed permission expression: {expression!r}", field="expression"
        )
    if not operators:
        return AND, codes
    if len(operators) > 1 or not operators <= {AND, OR}:
        raise ValidationException(
            "Permission expressions must use a single operator (all AND or all OR)",
            field="expression",
        )
    return operators.pop(), codes


class PermissionEvaluationEngine:
    """Answers "may this caller do X in tenant T [in agency A]?".

    Identity is always passed in explicitly as an IdentityContext. Platform
    super-admins short-circuit every permission check; super-admins and
    tenant owners bypass agency scoping.
    """

    def __init__(
        self,
        role_repo: IRoleRepository,
        assignment_repo: IAssignmentRepository,
        cache: ICacheService | None = None,
        cache_ttl: int = 300,
        after_commit: AfterCommit | None = None,
    ) -> None:
        self.role_repo = role_repo
        self.assignment_repo = assignment_repo
        self.cache = cache
        self.cache_ttl = cache_ttl
        self.after_commit = after_commit

    # Effective set

    async def effective_permissions(
        self, user_id: str, tenant_id: str, *, now: datetime | None = None
    ) -> frozenset[str]:
        """Union of permission sets of the user's valid roles in tenant.

        Uses the cache when available and no explicit `now` is given.
        """
        self._require_ids(user_id, tenant_id)
        use_cache = now is None and self.cache is not None and self.cache.is_available()
        key = permission_cache_key(tenant_id, user_id)
        if use_cache:
            cached = await self.cache.get(key)
            if cached is not None:
                return frozenset(cached)

        roles = await self._valid_roles(user_id, tenant_id, now)
        permissions = frozenset().union(*(role.permissions for role in roles))

        if use_cache:
            await self.cache.set(key, sorted(permissions), ttl=self.cache_ttl)
        return permissions

    async def get_user_permissions(
        self, user_id: str, tenant_id: str, *, now: datetime | None = None
    ) -> UserPermissionsResult:
        """Effective set plus the roles it came from and a by-resource view."""
        self._require_ids(user_id, tenant_id)
        roles = await self._valid_roles(user_id, tenant_id, now)
        roles.sort(key=lambda r: (-r.priority, r.name))
        permissions = frozenset().union(*(role.permissions for role in roles))
        return UserPermissionsResult(
            user_id=user_id,
            tenant_id=tenant_id,
            effective_permissions=permissions,
            roles=roles,
            groups=group_permissions(permissions),
            has_full_access=Permission.SYSTEM_ADMIN.value in permissions,
            access_level=self.access_level(permissions),
        )

    async def _valid_roles(
        self, user_id: str, tenant_id: str, now: datetime | None
    ) -> list[RoleEntity]:
        now = now or utc_now()
        assignments = [
            a
            for a in await self.assignment_repo.list_valid_for_user(user_id, tenant_id, now)
            if a.is_valid(now)
        ]
        if not assignments:
            return []
        roles = await self.role_repo.get_roles({a.role_id for a in assignments})
        result: dict[str, RoleEntity] = {}
        for assignment in assignments:
            role = roles.get(assignment.role_id)
            if role is None:
                logger.warning(
                    "Assignment %s references missing role %s",
                    assignment.id,
                    assignment.role_id,
                )
                continue
            if role.is_active:
                result[role.id] = role
        return list(result.values())

    # Point queries

    async def has_permission(
        self, ctx: IdentityContext, code: str, tenant_id: str | None = None
    ) -> bool:
        """Membership test in the effective set; super-admins always pass."""
        self._require_context(ctx)
        if ctx.is_super_admin:
            return True
        tenant = self._tenant_for(ctx, tenant_id)
        granted = code in await self.effective_permissions(ctx.user_id, tenant)
        logger.debug(
            "Permission %s for user %s in tenant %s: %s",
            code,
            ctx.user_id,
            tenant,
            granted,
        )
        return granted

    async def has_any_permission(
        self, ctx: IdentityContext, codes: Iterable[str], tenant_id: str | None = None
    ) -> bool:
        """True if any code is held. An empty list is never satisfied."""
        self._require_context(ctx)
        wanted = list(codes)
        if not wanted:
            return False
        if ctx.is_super_admin:
            return True
        held = await self.effective_permissions(ctx.user_id, self._tenant_for(ctx, tenant_id))
        return any(code in held for code in wanted)

    async def has_all_permissions(
        self, ctx: IdentityContext, codes: Iterable[str], tenant_id: str | None = None
    ) -> bool:
        """True if every code is held. An empty list is never satisfied."""
        self._require_context(ctx)
        wanted = list(codes)
        if not wanted:
            return False
        if ctx.is_super_admin:
            return True
        held = await self.effective_permissions(ctx.user_id, self._tenant_for(ctx, tenant_id))
        return all(code in held for code in wanted)

    async def has_role(
        self, ctx: IdentityContext, role_type: RoleType, tenant_id: str | None = None
    ) -> bool:
        """True if a valid assignment in tenant grants an active role of this kind."""
        self._require_context(ctx)
        tenant = self._tenant_for(ctx, tenant_id)
        roles = await self._valid_roles(ctx.user_id, tenant, None)
        return any(role.role_type == role_type for role in roles)

    def has_tenant_access(self, ctx: IdentityContext, tenant_id: str) -> bool:
        """Super-admins reach every tenant; others only their own."""
        self._require_context(ctx)
        if ctx.is_super_admin:
            return True
        return bool(tenant_id) and ctx.tenant_id == tenant_id

    async def has_agency_access(
        self, ctx: IdentityContext, agency_id: str, tenant_id: str | None = None
    ) -> bool:
        """Owners and super-admins bypass; others need a valid grant covering the agency.

        A grant covers an agency when it is scoped to it or is tenant-wide.
        """
        self._require_context(ctx)
        if ctx.bypasses_agency_scope:
            return True
        tenant = self._tenant_for(ctx, tenant_id)
        now = utc_now()
        assignments = await self.assignment_repo.list_valid_for_user(ctx.user_id, tenant, now)
        return any(a.is_valid(now) and a.covers_agency(agency_id) for a in assignments)

    async def has_permission_in_context(
        self,
        ctx: IdentityContext,
        code: str,
        tenant_id: str,
        agency_id: str | None = None,
    ) -> bool:
        """Tenant access AND (agency access when given) AND the permission itself."""
        if not self.has_tenant_access(ctx, tenant_id):
            logger.debug("User %s has no access to tenant %s", ctx.user_id, tenant_id)
            return False
        if agency_id is not None and not await self.has_agency_access(ctx, agency_id, tenant_id):
            logger.debug("User %s has no access to agency %s", ctx.user_id, agency_id)
            return False
        return await self.has_permission(ctx, code, tenant_id)

    async def evaluate_expression(
        self, ctx: IdentityContext, expression: str, tenant_id: str | None = None
    ) -> bool:
        """Evaluate an all-AND or all-OR expression over permission codes."""
        operator, codes = parse_expression(expression)
        logger.debug("Evaluating permission expression %r", expression)
        if operator == AND:
            return await self.has_all_permissions(ctx, codes, tenant_id)
        return await self.has_any_permission(ctx, codes, tenant_id)

    async def can_access_user_data(
        self, ctx: IdentityContext, target_user_id: str, tenant_id: str | None = None
    ) -> bool:
        """Callers may read their own data; otherwise super-admin or user_read."""
        self._require_context(ctx)
        if ctx.user_id == target_user_id or ctx.is_super_admin:
            return True
        return await self.has_permission(ctx, Permission.USER_READ.value, tenant_id)

    @staticmethod
    def access_level(permissions: Iterable[str]) -> AccessLevel:
        """Display-only classification; never use it to gate an operation."""
        return access_level_for(frozenset(permissions))

    # Guards

    async def require_permission(
        self, ctx: IdentityContext, code: str, tenant_id: str | None = None
    ) -> None:
        """Raise AuthorizationException if caller lacks code."""
        if not await self.has_permission(ctx, code, tenant_id):
            raise AuthorizationException(permission=code)

    async def require_permission_in_context(
        self,
        ctx: IdentityContext,
        code: str,
        tenant_id: str,
        agency_id: str | None = None,
    ) -> None:
        """Raise AuthorizationException unless has_permission_in_context holds."""
        if not await self.has_permission_in_context(ctx, code, tenant_id, agency_id):
            raise AuthorizationException(permission=code)

    # Cache

    async def invalidate_user_cache(self, user_id: str, tenant_id: str) -> None:
        """Invalidate cached permissions for one user."""
        key = permission_cache_key(tenant_id, user_id)
        await self._evict(lambda: self.cache.delete(key))

    async def invalidate_tenant_cache(self, tenant_id: str) -> None:
        """Invalidate all cached permissions for a tenant."""
        pattern = f"permission:{tenant_id}:*"
        await self._evict(lambda: self.cache.delete_pattern(pattern))

    async def _evict(self, delete: Callable[[], Awaitable[Any]]) -> None:
        """Run delete now and, with an after_commit scheduler, again after commit."""
        if not (self.cache and self.cache.is_available()):
            return
        await delete()
        if self.after_commit is not None:
            self.after_commit(delete)

    # Input checks

    @staticmethod
    def _require_ids(user_id: str | None, tenant_id: str | None) -> None:
        if not user_id:
            raise InvalidIdentityContextException("User ID is required", field="user_id")
        if not tenant_id:
            raise InvalidIdentityContextException(
                "Tenant context is required", field="tenant_id"
            )

    @staticmethod
    def _require_context(ctx: IdentityContext | None) -> None:
        if ctx is None:
            raise InvalidIdentityContextException("Identity context is required")

    @staticmethod
    def _tenant_for(ctx: IdentityContext, tenant_id: str | None) -> str:
        tenant = tenant_id or ctx.tenant_id
        if not tenant:
            raise InvalidIdentityContextException(
                "Tenant context is required", field="tenant_id"
            )
        return tenant
