"""GitHub Schemas — admin integration requests and provider/repository views.

Invariants:
    - Provider views never expose client_secret or access tokens
    - RepositoryCreate.full_name is "owner/name"
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ConnectRequest(BaseModel):
    client_id: str = Field(min_length=1, max_length=255)
    client_secret: str = Field(min_length=1, max_length=255)

    @field_validator("client_id", "client_secret")
    @classmethod
    def strip_credentials(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty or whitespace")
        return v


class RepositorySearchRequest(BaseModel):
    provider_id: int = Field(gt=0)
    query: str = Field(min_length=2, max_length=255)


class RepositoryCreate(BaseModel):
    provider_id: int = Field(gt=0)
    full_name: str = Field(pattern=r"^[\w.-]+/[\w.-]+$", max_length=255)


class IssueCreate(BaseModel):
    repository_id: int = Field(gt=0)
    title: str = Field(min_length=1, max_length=255)
    body: str = Field(min_length=1)


class IssueLinkCreate(BaseModel):
    repository_id: int = Field(gt=0)
    external_id: str = Field(pattern=r"^[0-9]+$", max_length=20)

    @field_validator("external_id")
    @classmethod
    def canonical_issue_number(cls, v: str) -> str:
        # stored links hold str(issue["number"]): "007" must compare equal to "7"
        return str(int(v))


class ProviderResponse(BaseModel):
    id: int
    name: str
    type: str
    connected: bool
    authenticated_at: datetime | None = None
    client_id: str | None = None
    user: dict | None = None
    error_message: str | None = None


class RepositoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    integration_provider_id: int
    name: str
    full_name: str
    has_webhook: bool = False


class GitHubSettingsResponse(BaseModel):
    providers: list[ProviderResponse]
    repositories: list[RepositoryResponse]
    callback_url: str
