"""
Error types shared across the store, services and API layers.
"""

from typing import Optional


class EntityStoreError(Exception):
    """A remote CRUD call against the entity store failed."""

    def __init__(self, table: str, operation: str, message: str = ""):
        self.table = table
        self.operation = operation
        detail = f"{operation} on '{table}' failed"
        if message:
            detail = f"{detail}: {message}"
        super().__init__(detail)


class EntityNotFoundError(EntityStoreError):
    """The requested record does not exist (or belongs to another user)."""

    def __init__(self, table: str, entity_id: Optional[str], operation: str = "get"):
        self.entity_id = entity_id
        super().__init__(table, operation, f"no record with id {entity_id}")


class ShoppingOptionStateError(ValueError):
    """An illegal Suggested/Linked transition was requested."""
