"""Owner-scoped JSON CRUD routes shared by every health entity kind."""
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse

from security import require_user_id
from store import EntityStore, get_store
from validation import Validation, validate

logger = logging.getLogger(__name__)


def _invalid(result: Validation, label: str) -> JSONResponse:
    return JSONResponse(
        {"ok": False, "error": f"Invalid {label} data", "fields": result.errors},
        status_code=400,
    )


def _not_found(label: str) -> JSONResponse:
    # same body whether the id is unknown or belongs to another user
    return JSONResponse({"ok": False, "error": f"{label.capitalize()} not found"}, status_code=404)


def crud_router(
    kind: str,
    path: str,
    item_key: str,
    list_key: str,
    label: str,
    with_list: bool = True,
) -> APIRouter:
    router = APIRouter()

    if with_list:
        @router.get(path)
        def list_items(
            limit: Optional[int] = Query(None, ge=1, le=500),
            uid: int = Depends(require_user_id),
            store: EntityStore = Depends(get_store),
        ):
            return JSONResponse({list_key: store.list_records(kind, uid, limit=limit)})

    @router.post(path)
    def create_item(
        payload: dict = Body(...),
        uid: int = Depends(require_user_id),
        store: EntityStore = Depends(get_store),
    ):
        result = validate(kind, payload)
        if not result.ok:
            return _invalid(result, label)
        item = store.create(kind, uid, result.values)
        logger.debug("Created %s %s for user %s", label, item["id"], uid)
        return JSONResponse({"ok": True, item_key: item}, status_code=201)

    @router.get(path + "/{record_id}")
    def get_item(
        record_id: int,
        uid: int = Depends(require_user_id),
        store: EntityStore = Depends(get_store),
    ):
        item = store.get(kind, record_id, uid)
        if item is None:
            return _not_found(label)
        return JSONResponse({"ok": True, item_key: item})

    @router.api_route(path + "/{record_id}", methods=["PUT", "PATCH"])
    def update_item(
        record_id: int,
        payload: dict = Body(...),
        uid: int = Depends(require_user_id),
        store: EntityStore = Depends(get_store),
    ):
        result = validate(kind, payload, partial=True)
        if not result.ok:
            return _invalid(result, label)
        item = store.update(kind, record_id, uid, result.values)
        if item is None:
            return _not_found(label)
        return JSONResponse({"ok": True, item_key: item})

    @router.delete(path + "/{record_id}")
    def delete_item(
        record_id: int,
        uid: int = Depends(require_user_id),
        store: EntityStore = Depends(get_store),
    ):
        if not store.delete(kind, record_id, uid):
            return _not_found(label)
        return JSONResponse({"ok": True})

    return router
