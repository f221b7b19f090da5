"""API 请求/响应 Pydantic 模型。按模块组织，路由从本包或子模块导入。"""
from app.schemas.common import ApiResponse, error_body
from app.schemas.health import HealthResponse

__all__ = [
    "ApiResponse",
    "error_body",
    "HealthResponse",
]
