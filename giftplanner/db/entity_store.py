"""
Entity Store — Generic per-user CRUD over Supabase tables.

Each entity kind (contacts, occasions, gifts, shopping_options,
affiliate_links) lives in its own table with a user_id column. An
EntityStore wraps one table for one user and exposes the small CRUD
surface the services need:

    list(sort)      -> all rows, optionally sorted ("-created_date")
    filter(**eq)    -> rows matching every field exactly
    get(id)         -> one row (EntityNotFoundError if absent)
    create(fields)  -> inserted row (server assigns id, created_date)
    update(id, f)   -> updated row (EntityNotFoundError if absent)
    delete(id)      -> None (EntityNotFoundError if absent)
    delete_where()  -> number of rows removed

Every Supabase exception is re-raised as EntityStoreError. Single-record
operations are all-or-nothing; there are no retries.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from giftplanner.core.errors import EntityNotFoundError, EntityStoreError

logger = logging.getLogger(__name__)

CONTACTS_TABLE = "contacts"
OCCASIONS_TABLE = "occasions"
GIFTS_TABLE = "gifts"
SHOPPING_OPTIONS_TABLE = "shopping_options"
AFFILIATE_LINKS_TABLE = "affiliate_links"

# Columns owned by the store; never accepted from callers on create/update.
_PROTECTED_COLUMNS = {"id", "user_id", "created_date"}


def parse_sort_spec(sort: str) -> tuple[str, bool]:
    """Split "-created_date" into ("created_date", True)."""
    sort = sort.strip()
    if sort.startswith("-"):
        return sort[1:], True
    return sort.lstrip("+"), False


class EntityStore:
    """CRUD access to one Supabase table, scoped to a single user."""

    def __init__(self, client: Any, table: str, user_id: str):
        self.client = client
        self.table = table
        self.user_id = user_id

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    def _query(self):
        return self.client.table(self.table)

    def _execute(self, operation: str, build: Callable[[], Any]) -> list[dict[str, Any]]:
        try:
            result = build().execute()
        except Exception as exc:
            raise EntityStoreError(self.table, operation, str(exc)) from exc
        return result.data or []

    @staticmethod
    def _clean(fields: dict[str, Any]) -> dict[str, Any]:
        return {k: v for k, v in fields.items() if k not in _PROTECTED_COLUMNS}

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    async def list(self, sort: Optional[str] = None) -> list[dict[str, Any]]:
        def build():
            query = self._query().select("*").eq("user_id", self.user_id)
            if sort:
                column, desc = parse_sort_spec(sort)
                query = query.order(column, desc=desc)
            return query

        return self._execute("list", build)

    async def filter(self, **fields: Any) -> list[dict[str, Any]]:
        def build():
            query = self._query().select("*").eq("user_id", self.user_id)
            for column, value in fields.items():
                if value is None:
                    query = query.is_(column, "null")
                else:
                    query = query.eq(column, value)
            return query

        return self._execute("filter", build)

    async def get(self, entity_id: str) -> dict[str, Any]:
        rows = self._execute(
            "get",
            lambda: self._query()
            .select("*")
            .eq("id", entity_id)
            .eq("user_id", self.user_id)
            .limit(1),
        )
        if not rows:
            raise EntityNotFoundError(self.table, entity_id)
        return rows[0]

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------

    async def create(self, fields: dict[str, Any]) -> dict[str, Any]:
        row = {**self._clean(fields), "user_id": self.user_id}
        rows = self._execute("create", lambda: self._query().insert(row))
        if not rows:
            raise EntityStoreError(self.table, "create", "insert returned no row")
        return rows[0]

    async def update(self, entity_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        changes = self._clean(fields)
        if not changes:
            return await self.get(entity_id)
        rows = self._execute(
            "update",
            lambda: self._query()
            .update(changes)
            .eq("id", entity_id)
            .eq("user_id", self.user_id),
        )
        if not rows:
            raise EntityNotFoundError(self.table, entity_id, "update")
        return rows[0]

    async def delete(self, entity_id: str) -> None:
        rows = self._execute(
            "delete",
            lambda: self._query()
            .delete()
            .eq("id", entity_id)
            .eq("user_id", self.user_id),
        )
        if not rows:
            raise EntityNotFoundError(self.table, entity_id, "delete")

    async def delete_where(self, **fields: Any) -> int:
        if not fields:
            raise ValueError("delete_where requires at least one field filter")

        def build():
            query = self._query().delete().eq("user_id", self.user_id)
            for column, value in fields.items():
                query = query.eq(column, value)
            return query

        return len(self._execute("delete", build))


# ======================================================================
# Per-user bundle of all entity stores
# ======================================================================

@dataclass
class Stores:
    """All entity stores for one user."""

    contacts: EntityStore
    occasions: EntityStore
    gifts: EntityStore
    shopping_options: EntityStore
    affiliate_links: EntityStore

    @classmethod
    def for_user(cls, client: Any, user_id: str) -> "Stores":
        return cls(
            contacts=EntityStore(client, CONTACTS_TABLE, user_id),
            occasions=EntityStore(client, OCCASIONS_TABLE, user_id),
            gifts=EntityStore(client, GIFTS_TABLE, user_id),
            shopping_options=EntityStore(client, SHOPPING_OPTIONS_TABLE, user_id),
            affiliate_links=EntityStore(client, AFFILIATE_LINKS_TABLE, user_id),
        )

    async def delete_gift(self, gift_id: str) -> None:
        """Delete a gift and every shopping option attached to it."""
        removed = await self.shopping_options.delete_where(gift_id=gift_id)
        await self.gifts.delete(gift_id)
        logger.info("Deleted gift %s (and %d shopping options)", gift_id, removed)

    async def delete_contact(self, contact_id: str) -> None:
        """
        Delete a contact together with its occasions, gifts and options.

        The store has no foreign-key cascade, so dependents are removed
        first. If a step fails part way, the remaining dependents are left
        dangling; aggregation tolerates that.
        """
        gifts = await self.gifts.filter(contact_id=contact_id)
        for gift in gifts:
            await self.delete_gift(gift["id"])
        occasions_removed = await self.occasions.delete_where(contact_id=contact_id)
        await self.contacts.delete(contact_id)
        logger.info(
            "Deleted contact %s (%d gifts, %d occasions)",
            contact_id, len(gifts), occasions_removed,
        )
