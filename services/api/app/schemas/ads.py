"""Schemas for the ads resource (/ads)."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class AdWrite(BaseModel):
    """Writable ad fields (request body for create and full update)."""

    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    price: float = Field(allow_inf_nan=False)
    active: bool = True


class AdCreate(AdWrite):
    """Request body for POST /ads."""


class AdUpdate(AdWrite):
    """Request body for PUT /ads/{id}. Every field is replaced."""


class Ad(BaseModel):
    """A stored ad, including store-assigned fields."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    price: float
    active: bool
    created_at: datetime
    updated_at: datetime


class AdPage(BaseModel):
    """One page of ads with pagination metadata.

    next_page / prev_page are None at the boundaries and left out of the
    response body.
    """

    ads: list[Ad]
    current_page: int = Field(ge=1)
    next_page: int | None = None
    prev_page: int | None = None
    total_pages: int = Field(ge=0)


class MessageResponse(BaseModel):
    """Plain confirmation message."""

    message: str


# Cache payload codec for the default list page
AdList = TypeAdapter(list[Ad])
