"""
Gift Planner Backend — FastAPI Entry Point

Initializes the FastAPI app, registers all route handlers and maps
entity store errors to HTTP responses.
"""

import logging

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse

from giftplanner.api.affiliate_links import router as affiliate_links_router
from giftplanner.api.analytics import router as analytics_router
from giftplanner.api.contacts import router as contacts_router
from giftplanner.api.dashboard import router as dashboard_router
from giftplanner.api.gifts import router as gifts_router
from giftplanner.api.occasions import router as occasions_router
from giftplanner.api.shopping_options import router as shopping_options_router
from giftplanner.core.config import PROJECT_NAME
from giftplanner.core.errors import EntityNotFoundError, EntityStoreError
from giftplanner.core.security import get_current_user_id

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=f"{PROJECT_NAME} API",
    description="Contacts, occasions, gifts and shopping options — Backend API",
    version="0.1.0",
)

# --- Register API routers ---
app.include_router(contacts_router)
app.include_router(occasions_router)
app.include_router(gifts_router)
app.include_router(shopping_options_router)
app.include_router(affiliate_links_router)
app.include_router(dashboard_router)
app.include_router(analytics_router)


@app.exception_handler(EntityNotFoundError)
async def entity_not_found_handler(request: Request, exc: EntityNotFoundError):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": f"{exc.table} record not found: {exc.entity_id}"},
    )


@app.exception_handler(EntityStoreError)
async def entity_store_error_handler(request: Request, exc: EntityStoreError):
    logger.error(
        "Entity store failure on %s %s: %s",
        request.method, request.url.path, exc, exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Failed to access stored data. Please try again."},
    )


@app.get("/health")
async def health_check():
    """Health check endpoint. Returns service status."""
    return {"status": "ok"}


@app.get("/api/v1/me")
async def get_current_user(user_id: str = Depends(get_current_user_id)):
    """
    Protected endpoint — returns the authenticated user's ID.

    Requires a valid Supabase Bearer token in the Authorization header.
    """
    return {"user_id": user_id}
