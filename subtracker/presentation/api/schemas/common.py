"""Shared pydantic base and envelope pieces for the JSON API."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Accepts snake_case or camelCase keys on input, emits camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class MessageResponse(ApiModel):
    success: bool = True
    message: str


class PaginationOut(ApiModel):
    total: int
    page: int
    limit: int
    pages: int
