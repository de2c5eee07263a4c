"""Routes for the entity kinds that need nothing beyond plain CRUD."""
from fastapi import APIRouter

from routers.crud import crud_router

router = APIRouter()

router.include_router(crud_router(
    "medical_timeline",
    "/api/medical-timeline",
    item_key="entry",
    list_key="medical_timeline",
    label="timeline entry",
))
router.include_router(crud_router(
    "health_tasks",
    "/api/health-tasks",
    item_key="task",
    list_key="health_tasks",
    label="health task",
))
router.include_router(crud_router(
    "expenses",
    "/api/expenses",
    item_key="expense",
    list_key="expenses",
    label="expense",
))
