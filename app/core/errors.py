"""业务错误分类。路由层不在本地恢复，统一由 main 中的异常处理器翻译为 HTTP 状态码与响应信封。"""


class AppError(Exception):
    status_code = 500
    default_message = "An internal server error occurred"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(AppError):
    status_code = 400
    default_message = "Bad request"


class Unauthorized(AppError):
    status_code = 401
    default_message = "Missing or invalid bearer token"


class Forbidden(AppError):
    status_code = 403
    default_message = "Operation not permitted"


class NotFound(AppError):
    status_code = 404
    default_message = "Resource not found"


class Conflict(AppError):
    status_code = 409
    default_message = "Resource already exists"


class Unprocessable(AppError):
    status_code = 422
    default_message = "Unprocessable entity"


class Internal(AppError):
    status_code = 500
