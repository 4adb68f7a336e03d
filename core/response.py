from typing import Generic, TypeVar, Optional, Any

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Unified API response schema."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    code: int = 200
    msg: str = "success"
    data: Optional[T] = None


def success_response(data: Optional[T] = None, message: str = "success", code: int = 200) -> APIResponse[T]:
    return APIResponse(code=code, msg=message, data=data)


def error_response(message: str = "error", code: int = 400, data: Optional[Any] = None) -> APIResponse[Any]:
    return APIResponse(code=code, msg=message, data=data)
