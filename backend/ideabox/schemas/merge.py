"""Merge Schemas — admin merge/unmerge requests and results.

Invariants:
    - MergeManyRequest.merge_ids: non-empty, unique, never contains post_id
"""

from pydantic import BaseModel, Field, field_validator, model_validator

from ideabox.schemas.post import PostResponse


class MergeRequest(BaseModel):
    target_post_id: int = Field(gt=0)


class MergeManyRequest(BaseModel):
    post_id: int = Field(gt=0)
    merge_ids: list[int] = Field(min_length=1)
    status_id: int | None = Field(None, gt=0)

    @field_validator("merge_ids")
    @classmethod
    def dedupe_merge_ids(cls, v: list[int]) -> list[int]:
        return list(dict.fromkeys(v))

    @model_validator(mode="after")
    def target_not_in_sources(self):
        if self.post_id in self.merge_ids:
            raise ValueError("merge_ids cannot contain post_id")
        return self


class MergeResponse(BaseModel):
    message: str
    target: PostResponse
    merged: list[PostResponse]


class UnmergeResponse(BaseModel):
    message: str
    post: PostResponse
    target: PostResponse
