"""Response envelope shared by every endpoint."""
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base model that speaks camelCase on the wire and snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        use_enum_values=True,
    )


class ApiResponse(CamelModel, Generic[T]):
    status_code: int = 200
    success: bool = True
    message: str = "Successful"
    data: Optional[T] = None


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    limit: int
    has_next_page: bool
    has_prev_page: bool


def paginate(total: int, page: int, limit: int) -> dict:
    """Pagination fields shared by the animal and health record listings."""
    total_pages = (total + limit - 1) // limit if total > 0 else 0
    return {
        "current_page": page,
        "total_pages": total_pages,
        "limit": limit,
        "has_next_page": page < total_pages,
        "has_prev_page": page > 1,
    }


def ok(data: Any = None, message: str = "Successful", status_code: int = 200) -> ApiResponse:
    return ApiResponse(status_code=status_code, success=status_code < 400, message=message, data=data)


def error_body(status_code: int, message: str, errors: Optional[list] = None) -> dict:
    body = ApiResponse(status_code=status_code, success=False, message=message).model_dump(by_alias=True)
    if errors:
        body["errors"] = errors
    return body
