"""Post Schemas — public/admin views of posts and their issue links."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class LinkedIssueResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    integration_provider_id: int
    integration_repository_id: int
    repository_name: str | None = None
    external_id: str
    external_url: str | None = None
    status: str
    issue_title: str | None = None


class MergedIntoResponse(BaseModel):
    id: int
    title: str
    slug: str
    board_slug: str


class PostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: str
    body: str | None = None
    vote: int
    comments: int
    board_id: int
    status_id: int | None = None
    created_by: int | None = None
    merged_into_post_id: int | None = None
    merged_by_user_id: int | None = None
    merged_at: datetime | None = None
    created_at: datetime


class PostDetailResponse(PostResponse):
    """Public post page payload: the post plus merge target and linked issues."""
    board_slug: str
    status_name: str | None = None
    merged_into: MergedIntoResponse | None = None
    linked_issues: list[LinkedIssueResponse] = []
