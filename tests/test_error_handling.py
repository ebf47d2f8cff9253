"""
Tests for error classes and error scenarios.

Tests cover:
- ErrorCode values
- Status codes per error class
- Response bodies (to_dict)
- Exception inheritance
- Unhandled exceptions rendered as 500 by the app
"""
import pytest
from fastapi.testclient import TestClient

from voiso.services.errors import (
    ErrorCode,
    Forbidden,
    NotFound,
    PersistenceWarning,
    ProviderError,
    QuotaExceeded,
    StorageError,
    Unauthenticated,
    ValidationError,
    VoisoError,
)


class TestErrorCode:
    """Tests for ErrorCode constants."""

    def test_codes(self):
        assert ErrorCode.INVALID_INPUT == "invalid"
        assert ErrorCode.QUOTA_EXCEEDED == "quota_exceeded"
        assert ErrorCode.PROVIDER_ERROR == "provider_error"
        assert ErrorCode.INTERNAL_ERROR == "error"


class TestStatusCodes:
    @pytest.mark.parametrize("exc,status,code", [
        (ValidationError("text is required"), 400, "invalid"),
        (Unauthenticated(), 401, "unauthenticated"),
        (Forbidden(), 403, "forbidden"),
        (NotFound(), 404, "not_found"),
        (QuotaExceeded(used=20, limit=20), 429, "quota_exceeded"),
        (ProviderError("boom"), 500, "provider_error"),
        (StorageError("disk full"), 500, "storage_error"),
    ])
    def test_status_and_code(self, exc, status, code):
        assert isinstance(exc, VoisoError)
        assert exc.status_code == status
        assert exc.code == code


class TestToDict:
    """Response bodies."""

    def test_simple_error(self):
        assert NotFound().to_dict() == {"error": "Voice not found"}
        assert Forbidden().to_dict() == {"error": "Access denied to this voice"}
        assert Unauthenticated().to_dict() == {"error": "Unauthorized"}

    def test_validation_lists_every_rule(self):
        exc = ValidationError(["voice_id is required", "text is required"])
        assert exc.errors == ["voice_id is required", "text is required"]
        assert exc.to_dict() == {
            "error": "voice_id is required; text is required",
            "details": ["voice_id is required", "text is required"],
        }

    def test_single_string_validation(self):
        assert ValidationError("Invalid JSON body").errors == ["Invalid JSON body"]

    def test_quota_exceeded_body(self):
        body = QuotaExceeded(used=21, limit=20).to_dict()
        assert body["error"] == "quota_exceeded"
        assert body["usage"] == {"used": 21, "limit": 20}
        assert "21/20" in body["message"]

    def test_provider_error_keeps_upstream(self):
        exc = ProviderError("Speech provider error: 502 - bad gateway", status=502, body="bad gateway")
        assert exc.status == 502
        assert exc.body == "bad gateway"
        assert exc.to_dict() == {"error": "Speech provider error: 502 - bad gateway"}


class TestPersistenceWarning:
    def test_not_a_client_error(self):
        warning = PersistenceWarning("counter", RuntimeError("locked"))
        assert not isinstance(warning, VoisoError)
        assert warning.kind == "counter"
        assert "locked" in str(warning)


class TestUnhandled:
    """Unexpected exceptions never leak details."""

    def test_internal_error_body(self, services, make_voice, monkeypatch, auth_headers):
        from voiso.api.dependencies import get_services
        from voiso.main import create_app

        def boom(request):
            raise KeyError("secret internals")

        monkeypatch.setattr(services.provider, "synthesize", boom)

        app = create_app()
        app.dependency_overrides[get_services] = lambda: services
        with TestClient(app, raise_server_exceptions=False) as client:
            resp = client.post(
                "/v1/generate-audio",
                json={"voice_id": make_voice().id, "text": "Hi"},
                headers=auth_headers(),
            )
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error"}

    def test_storage_failure_is_storage_error(self, services, make_voice, monkeypatch):
        from conftest import USER_A

        def boom(key, data, content_type="application/octet-stream"):
            raise OSError("disk full")

        monkeypatch.setattr(services.storage, "put", boom)
        with pytest.raises(StorageError):
            services.generation.generate(USER_A, {"voice_id": make_voice().id, "text": "Hi"})
