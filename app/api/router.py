from fastapi import APIRouter, Depends

from app.api.deps import get_token_claims
from app.api.routes.health import router as health_router
from app.api.routes.student import router as student_router
from app.api.routes.teacher import router as teacher_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(
    student_router, prefix="/student", tags=["student"], dependencies=[Depends(get_token_claims)]
)
api_router.include_router(
    teacher_router, prefix="/teacher", tags=["teacher"], dependencies=[Depends(get_token_claims)]
)
