"""Error hierarchy tests — status codes, categories and the REST envelope."""

from ideabox.core.errors import (
    AIServiceError, AuthenticationRequiredError, DatabaseError, ErrorCategory,
    ErrorContext, IdeaBoxError, IntegrationConflictError, IntegrationError,
    IntegrationNotAuthenticatedError, PermissionDeniedError, ResourceNotFoundError,
)


def test_every_error_is_an_ideabox_error():
    errors = [
        ResourceNotFoundError("Post", "1"),
        IntegrationConflictError("busy"),
        IntegrationNotAuthenticatedError("GitHub"),
        AuthenticationRequiredError(),
        PermissionDeniedError(),
        IntegrationError("down"),
        DatabaseError("boom", "commit"),
        AIServiceError("slow", "timeout"),
    ]
    assert all(isinstance(e, IdeaBoxError) for e in errors)


def test_http_status_per_error_type():
    assert ResourceNotFoundError("Post", "1").http_status == 404
    assert IntegrationConflictError("busy").http_status == 409
    assert IntegrationNotAuthenticatedError("GitHub").http_status == 400
    assert AuthenticationRequiredError().http_status == 401
    assert PermissionDeniedError().http_status == 403
    assert IntegrationError("down").http_status == 502
    assert DatabaseError("boom", "commit").http_status == 503
    assert AIServiceError("slow", "timeout").http_status == 503


def test_not_found_message_names_resource():
    err = ResourceNotFoundError("Repository", "12")
    assert err.message == "Repository '12' not found"
    assert err.category == ErrorCategory.RESOURCE_NOT_FOUND


def test_to_response_envelope():
    err = IntegrationConflictError(
        "Repository already exists.",
        ErrorContext(provider_id=4, repository="acme/widgets"),
    )
    body = err.to_response()["error"]
    assert body["code"] == "INTEGRATION_CONFLICT"
    assert body["message"] == "Repository already exists."
    assert body["category"] == "conflict"
    assert body["context"]["provider_id"] == 4
    assert body["context"]["repository"] == "acme/widgets"
    assert "timestamp" in body


def test_ai_service_error_carries_retry_after():
    err = AIServiceError("limited", "rate_limit", retry_after_ms=2000)
    assert err.context.retry_after_ms == 2000
    assert err.api_error_type == "rate_limit"
    assert "rate_limit" in err.message
