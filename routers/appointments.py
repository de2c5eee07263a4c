from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from routers.crud import crud_router
from security import require_user_id
from store import EntityStore, get_store

router = APIRouter()


# registered ahead of the /{record_id} routes so "upcoming" is not read as an id
@router.get("/api/appointments/upcoming")
def api_appointments_upcoming(
    uid: int = Depends(require_user_id),
    store: EntityStore = Depends(get_store),
):
    return JSONResponse({"appointments": store.upcoming_appointments(uid)})


router.include_router(crud_router(
    "appointments",
    "/api/appointments",
    item_key="appointment",
    list_key="appointments",
    label="appointment",
))
