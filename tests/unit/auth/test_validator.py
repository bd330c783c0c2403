"""Tests for remote key validation."""

import httpx
import pytest

from keyman.auth.exceptions import (
    NO_CREDENTIAL_CAUSE,
    InvalidCredentialError,
    NoCredentialProvidedError,
    TransportFailureError,
)
from keyman.auth.models import KeyAccepted, KeyRejected
from keyman.auth.validator import RemoteValidator
from tests.fixtures.keys import API_BASE_URL, FakeKeyAuthority


class TestRemoteValidator:
    """Test RemoteValidator against a mocked remote authority."""

    async def test_empty_candidate_is_rejected_without_request(
        self, validator: RemoteValidator, key_authority: FakeKeyAuthority
    ) -> None:
        """Empty and missing keys never reach the network."""
        for candidate in ("", None):
            outcome = await validator.validate(candidate)

            assert isinstance(outcome, KeyRejected)
            assert outcome.cause == NO_CREDENTIAL_CAUSE
            assert outcome.no_credential
            assert not outcome.transport_error

        assert key_authority.requests == []

    async def test_accepted_key_returns_usage_record(
        self, validator: RemoteValidator, key_authority: FakeKeyAuthority
    ) -> None:
        key_authority.accept("good-key", owner="owner-1", limit=300, queries=7, total=1500)

        outcome = await validator.validate("good-key")

        assert isinstance(outcome, KeyAccepted)
        assert outcome.key == "good-key"
        assert outcome.info.owner == "owner-1"
        assert outcome.info.limit == 300
        assert outcome.info.queries_in_past_min == 7
        assert outcome.info.total_queries == 1500
        assert key_authority.requests == ["good-key"]

    async def test_rejected_key_carries_remote_cause(
        self, validator: RemoteValidator
    ) -> None:
        outcome = await validator.validate("bad-key")

        assert isinstance(outcome, KeyRejected)
        assert outcome.key == "bad-key"
        assert outcome.cause == "Invalid API key"
        assert not outcome.transport_error
        with pytest.raises(InvalidCredentialError, match="Invalid API key"):
            outcome.raise_for_rejection()

    async def test_rejection_without_cause_names_status(self) -> None:
        """A failure body without a cause gets one naming the HTTP status."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, json={"success": False})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            validator = RemoteValidator(base_url=API_BASE_URL, http_client=client)
            outcome = await validator.validate("throttled")

        assert isinstance(outcome, KeyRejected)
        assert outcome.cause == "Key rejected (HTTP 429)"

    async def test_transport_failure_is_a_rejection(
        self, validator: RemoteValidator, key_authority: FakeKeyAuthority
    ) -> None:
        """Transport errors come back as outcomes, not exceptions."""
        key_authority.accept("good-key")
        key_authority.fail_with = httpx.ConnectError("connection refused")

        outcome = await validator.validate("good-key")

        assert isinstance(outcome, KeyRejected)
        assert outcome.transport_error
        assert "connection refused" in outcome.cause
        with pytest.raises(TransportFailureError):
            outcome.raise_for_rejection()

    async def test_unreadable_body_is_a_transport_rejection(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="<html>Bad Gateway</html>")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            validator = RemoteValidator(base_url=API_BASE_URL, http_client=client)
            outcome = await validator.validate("some-key")

        assert isinstance(outcome, KeyRejected)
        assert outcome.transport_error
        assert "HTTP 502" in outcome.cause

    async def test_malformed_record_is_rejected(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": True, "record": {"owner": "x"}})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            validator = RemoteValidator(base_url=API_BASE_URL, http_client=client)
            outcome = await validator.validate("some-key")

        assert isinstance(outcome, KeyRejected)
        assert outcome.cause.startswith("Malformed key record")

    async def test_request_targets_key_endpoint(self) -> None:
        seen: list[httpx.URL] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url)
            return httpx.Response(403, json={"success": False, "cause": "nope"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            validator = RemoteValidator(base_url=f"{API_BASE_URL}/", http_client=client)
            await validator.validate("abc 123")

        assert len(seen) == 1
        assert seen[0].path == "/key"
        assert seen[0].host == "keys.example.test"
        assert seen[0].params["key"] == "abc 123"

    async def test_is_valid(
        self, validator: RemoteValidator, key_authority: FakeKeyAuthority
    ) -> None:
        key_authority.accept("good-key")

        assert await validator.is_valid("good-key") is True
        assert await validator.is_valid("bad-key") is False
        assert await validator.is_valid("") is False

    async def test_no_credential_raises_dedicated_error(
        self, validator: RemoteValidator
    ) -> None:
        outcome = await validator.validate(None)

        with pytest.raises(NoCredentialProvidedError):
            outcome.raise_for_rejection()

    async def test_close_leaves_injected_client_open(
        self, http_client: httpx.AsyncClient
    ) -> None:
        async with RemoteValidator(base_url=API_BASE_URL, http_client=http_client):
            pass

        assert not http_client.is_closed

    async def test_close_closes_owned_client(self) -> None:
        validator = RemoteValidator(base_url=API_BASE_URL)
        client = validator.http_client

        await validator.close()

        assert client.is_closed
