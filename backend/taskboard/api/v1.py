# taskboard/api/v1.py
from fastapi import APIRouter

from taskboard.modules.tasks.routers import router as tasks_router

api_v1_router = APIRouter()

api_v1_router.include_router(tasks_router, prefix="/tasks")
