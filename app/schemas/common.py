"""统一响应信封 {status_code, status_message, data}。"""
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    status_code: int = Field(200, description="HTTP 状态码")
    status_message: str = Field("OK", description="状态说明或错误信息")
    data: T | None = None

    @classmethod
    def ok(cls, data: T | None = None) -> "ApiResponse[T]":
        return cls(status_code=200, status_message="OK", data=data)


def error_body(status_code: int, message: str) -> dict:
    return ApiResponse[None](status_code=status_code, status_message=message, data=None).model_dump()
