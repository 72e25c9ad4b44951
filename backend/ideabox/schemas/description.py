"""Feature description drafting request/response."""

from pydantic import BaseModel, Field, field_validator


class DescriptionRequest(BaseModel):
    title: str = Field(min_length=1, max_length=255)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title cannot be empty or whitespace")
        return v


class DescriptionResponse(BaseModel):
    description: str
