"""健康检查响应模型。"""
from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = Field("ok", description="服务状态")
    database: str = Field("ok", description="数据库连通性：ok / unavailable")
