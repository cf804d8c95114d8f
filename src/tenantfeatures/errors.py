"""User-facing errors raised by tenant and feature management."""

from __future__ import annotations


class UserFriendlyError(Exception):
    """An error whose message is safe to show to the end user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TenantNotFoundError(UserFriendlyError):
    def __init__(self, tenant_id: int):
        super().__init__(f"There is no tenant with id: {tenant_id}")
        self.tenant_id = tenant_id


class TenancyNameConflictError(UserFriendlyError):
    def __init__(self, tenancy_name: str):
        super().__init__(f"Tenancy name {tenancy_name} is already taken.")
        self.tenancy_name = tenancy_name


class InvalidTenancyNameError(UserFriendlyError):
    def __init__(self, tenancy_name: str):
        super().__init__(
            f"Invalid tenancy name: {tenancy_name!r}. It must start with a letter "
            "and contain only letters, digits, '-' or '_'."
        )
        self.tenancy_name = tenancy_name
