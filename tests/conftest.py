"""
Shared fixtures: an in-memory entity store, a scripted suggestion
generator (options, flowers and affiliate programs), and a TestClient
wired to both through dependency overrides.

No Supabase or Anthropic credentials are needed for anything here.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient

from giftplanner.core.errors import EntityNotFoundError
from giftplanner.db.entity_store import (
    AFFILIATE_LINKS_TABLE,
    CONTACTS_TABLE,
    GIFTS_TABLE,
    OCCASIONS_TABLE,
    SHOPPING_OPTIONS_TABLE,
    Stores,
    parse_sort_spec,
)
from giftplanner.models.reports import AffiliateProgramInfo
from giftplanner.models.shopping import FlowerArrangement, FlowerOrderRequest, SuggestedOption

TEST_USER_ID = "user-test-1"

_EPOCH = datetime(2026, 1, 1, 9, 0, 0)


class InMemoryEntityStore:
    """Same async surface as EntityStore, backed by a dict."""

    def __init__(self, table: str, user_id: str = TEST_USER_ID):
        self.table = table
        self.user_id = user_id
        self.rows: dict[str, dict[str, Any]] = {}
        self._counter = 0

    def seed(self, **fields: Any) -> dict[str, Any]:
        """Insert a row directly, bypassing create()'s column stripping."""
        self._counter += 1
        row = {
            "id": fields.pop("id", f"{self.table}-{self._counter}"),
            "user_id": self.user_id,
            "created_date": (_EPOCH + timedelta(minutes=self._counter)).isoformat(),
            **fields,
        }
        self.rows[row["id"]] = row
        return dict(row)

    async def list(self, sort: Optional[str] = None) -> list[dict[str, Any]]:
        rows = [dict(r) for r in self.rows.values()]
        if sort:
            column, desc = parse_sort_spec(sort)
            rows.sort(key=lambda r: str(r.get(column) or ""), reverse=desc)
        return rows

    async def filter(self, **fields: Any) -> list[dict[str, Any]]:
        return [
            dict(r) for r in self.rows.values()
            if all(r.get(k) == v for k, v in fields.items())
        ]

    async def get(self, entity_id: str) -> dict[str, Any]:
        if entity_id not in self.rows:
            raise EntityNotFoundError(self.table, entity_id)
        return dict(self.rows[entity_id])

    async def create(self, fields: dict[str, Any]) -> dict[str, Any]:
        clean = {k: v for k, v in fields.items() if k not in ("id", "user_id", "created_date")}
        return self.seed(**clean)

    async def update(self, entity_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        if entity_id not in self.rows:
            raise EntityNotFoundError(self.table, entity_id, "update")
        clean = {k: v for k, v in fields.items() if k not in ("id", "user_id", "created_date")}
        self.rows[entity_id].update(clean)
        return dict(self.rows[entity_id])

    async def delete(self, entity_id: str) -> None:
        if self.rows.pop(entity_id, None) is None:
            raise EntityNotFoundError(self.table, entity_id, "delete")

    async def delete_where(self, **fields: Any) -> int:
        if not fields:
            raise ValueError("delete_where requires at least one field filter")
        doomed = [
            rid for rid, r in self.rows.items()
            if all(r.get(k) == v for k, v in fields.items())
        ]
        for rid in doomed:
            del self.rows[rid]
        return len(doomed)


class ScriptedGenerator:
    """SuggestionGenerator that returns canned results and records calls."""

    def __init__(self, options: Optional[list[SuggestedOption]] = None):
        self.options = options or []
        self.arrangements: list[FlowerArrangement] = []
        self.programs: list[AffiliateProgramInfo] = []
        self.calls: list[tuple[str, str, Optional[str]]] = []
        self.flower_calls: list[tuple[str, FlowerOrderRequest]] = []
        self.program_calls: list[list[str]] = []

    async def generate(self, contact, gift, category=None) -> list[SuggestedOption]:
        self.calls.append((contact.id, gift.id, category))
        if category:
            return [o.model_copy(update={"category": category}) for o in self.options[:1]]
        return list(self.options)

    async def suggest_flowers(self, contact, request) -> list[FlowerArrangement]:
        self.flower_calls.append((contact.id, request))
        return list(self.arrangements)

    async def find_affiliate_programs(self, stores) -> list[AffiliateProgramInfo]:
        self.program_calls.append([s.name for s in stores])
        return list(self.programs)


def make_arrangement(name: str, store_url: str, price: float = 60.0) -> FlowerArrangement:
    return FlowerArrangement(
        name=name,
        description=f"{name} description",
        price=price,
        store_name="Florist",
        store_url=store_url,
        same_day_delivery=True,
    )


def make_suggestion(title: str, category: str = "home", price: float = 25.0) -> SuggestedOption:
    return SuggestedOption(
        title=title,
        description=f"{title} description",
        category=category,
        target_interest="cooking",
        estimated_price=price,
        key_features=["durable"],
        search_terms=f"{title} buy",
    )


@pytest.fixture
def stores() -> Stores:
    return Stores(
        contacts=InMemoryEntityStore(CONTACTS_TABLE),
        occasions=InMemoryEntityStore(OCCASIONS_TABLE),
        gifts=InMemoryEntityStore(GIFTS_TABLE),
        shopping_options=InMemoryEntityStore(SHOPPING_OPTIONS_TABLE),
        affiliate_links=InMemoryEntityStore(AFFILIATE_LINKS_TABLE),
    )


@pytest.fixture
def generator() -> ScriptedGenerator:
    scripted = ScriptedGenerator([
        make_suggestion("Cast Iron Skillet", "home", 35.0),
        make_suggestion("Chef Knife", "home", 45.0),
        make_suggestion("Cookbook", "books", 20.0),
    ])
    scripted.arrangements = [
        make_arrangement("Sunny Roses", "https://www.1800flowers.com/roses-123?size=deluxe", 65.0),
        make_arrangement("Wildflower Jar", "https://www.bouqs.com/wildflower", 55.0),
    ]
    return scripted


@pytest.fixture
def client(stores, generator):
    """TestClient authenticated as TEST_USER_ID, using the in-memory stores."""
    from giftplanner.api.deps import get_stores, get_suggestion_generator
    from giftplanner.core.security import get_current_user_id
    from giftplanner.main import app

    app.dependency_overrides[get_current_user_id] = lambda: TEST_USER_ID
    app.dependency_overrides[get_stores] = lambda: stores
    app.dependency_overrides[get_suggestion_generator] = lambda: generator
    yield TestClient(app)
    app.dependency_overrides.clear()
