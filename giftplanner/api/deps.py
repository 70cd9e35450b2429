"""
Shared FastAPI dependencies for the gift planner routers.

Routes never build stores or generators themselves; they depend on these
functions, which tests replace through app.dependency_overrides.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Query, status

from giftplanner.core.security import get_current_user_id
from giftplanner.db.entity_store import Stores
from giftplanner.db.supabase_client import get_service_client
from giftplanner.services.shopping import ShoppingOptionReconciler
from giftplanner.services.spending import normalize_statuses
from giftplanner.services.suggestions import ClaudeSuggestionGenerator, SuggestionGenerator


async def get_stores(user_id: str = Depends(get_current_user_id)) -> Stores:
    """Entity stores scoped to the authenticated user."""
    return Stores.for_user(get_service_client(), user_id)


def get_suggestion_generator() -> SuggestionGenerator:
    return ClaudeSuggestionGenerator()


async def get_reconciler(
    stores: Stores = Depends(get_stores),
    generator: SuggestionGenerator = Depends(get_suggestion_generator),
) -> ShoppingOptionReconciler:
    return ShoppingOptionReconciler(stores, generator)


def statuses_query(
    statuses: Optional[list[str]] = Query(
        default=None,
        description="Gift statuses that count as spent (overrides the report default).",
    ),
) -> Optional[frozenset[str]]:
    """Parse ?statuses=purchased&statuses=given; None means use the default."""
    if not statuses:
        return None
    try:
        return normalize_statuses(statuses)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown gift status in {statuses}.",
        )
