from fastapi import APIRouter
from testgen.api.routes import test_cases, history, health

api_router = APIRouter()

# Include all route modules
api_router.include_router(health.router)
api_router.include_router(test_cases.router)
api_router.include_router(history.router)
