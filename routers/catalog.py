"""Catalog router: categories, search suggestions and content statistics."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from routers.dependencies import get_content_store
from routers.responses import success_response
from services.catalog import catalog_stats_service, list_categories_service, search_suggestions_service
from services.content_store import ContentStore

router = APIRouter()


@router.get("/categories")
async def list_categories(
    refresh: bool = False,
    content_store: ContentStore = Depends(get_content_store),
):
    return success_response(await list_categories_service(content_store=content_store, use_cache=not refresh))


@router.get("/suggestions")
async def search_suggestions(
    q: str = Query(default="", description="Partial search term."),
    content_store: ContentStore = Depends(get_content_store),
):
    return success_response(await search_suggestions_service(content_store=content_store, query=q))


@router.get("/stats")
async def catalog_stats(content_store: ContentStore = Depends(get_content_store)):
    return success_response(await catalog_stats_service(content_store=content_store))
