"""
HelpFlow Backend: Clerk Webhook Service Unit Tests
===================================================

What:  Signature verification (real Svix signatures) and profile mirroring
       for user.created / user.updated / user.deleted against a mock session.

What we test:
    ✅ Valid signatures verify; tampered, missing and foreign ones do not
    ✅ user.created with a resolvable email creates exactly one inactive/free profile
    ✅ user.created without a primary email fails before any write
    ✅ user.updated / user.deleted on unknown users are acknowledged no-ops
    ✅ Database failures surface as PersistenceError
"""

import json
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from helpflow.config import settings
from helpflow.exceptions import (
    InvalidSignatureError,
    MalformedPayloadError,
    MissingPrimaryEmailError,
    PersistenceError,
    ServiceNotConfiguredError,
)
from helpflow.models.profile import Profile
from helpflow.services.identity_webhook_service import (
    IdentityWebhookService,
    resolve_primary_email,
)

CLERK_TEST_SECRET = settings.clerk_webhook_secret


def user_event(event_type: str, **data) -> dict:
    payload = {
        "id": "user_2abc",
        "primary_email_address_id": "idn_1",
        "email_addresses": [
            {"id": "idn_0", "email_address": "old@example.com"},
            {"id": "idn_1", "email_address": "ada@example.com"},
        ],
    }
    payload.update(data)
    return {"type": event_type, "object": "event", "data": payload}


class TestResolvePrimaryEmail:

    def test_matches_primary_id(self):
        assert resolve_primary_email(user_event("user.created")["data"]) == "ada@example.com"

    def test_no_match_returns_none(self):
        data = user_event("user.created", primary_email_address_id="idn_missing")["data"]
        assert resolve_primary_email(data) is None

    def test_missing_addresses_returns_none(self):
        assert resolve_primary_email({"id": "user_2abc", "primary_email_address_id": "idn_1"}) is None


class TestVerify:

    def setup_method(self):
        self.service = IdentityWebhookService(CLERK_TEST_SECRET)

    def test_valid_signature_returns_event(self, sign_clerk_payload):
        body = json.dumps(user_event("user.created"))
        event = self.service.verify(body.encode(), sign_clerk_payload(body))
        assert event["type"] == "user.created"
        assert event["data"]["id"] == "user_2abc"

    def test_tampered_body_is_rejected(self, sign_clerk_payload):
        body = json.dumps(user_event("user.created"))
        headers = sign_clerk_payload(body)
        tampered = body.replace("ada@example.com", "eve@example.com")

        with pytest.raises(InvalidSignatureError):
            self.service.verify(tampered.encode(), headers)

    def test_signature_from_another_secret_is_rejected(self, sign_clerk_payload):
        body = json.dumps(user_event("user.created"))
        headers = sign_clerk_payload(body, secret="whsec_dGhpcyBpcyBhIGRpZmZlcmVudCBrZXk=")

        with pytest.raises(InvalidSignatureError):
            self.service.verify(body.encode(), headers)

    def test_missing_headers_are_rejected(self):
        with pytest.raises(InvalidSignatureError) as exc_info:
            self.service.verify(b"{}", {})
        assert exc_info.value.source == "clerk"

    def test_unconfigured_secret(self, sign_clerk_payload):
        service = IdentityWebhookService("")
        with pytest.raises(ServiceNotConfiguredError):
            service.verify(b"{}", sign_clerk_payload("{}"))

    def test_signed_body_without_envelope_is_malformed(self, sign_clerk_payload):
        body = json.dumps({"hello": "world"})
        with pytest.raises(MalformedPayloadError):
            self.service.verify(body.encode(), sign_clerk_payload(body))

    def test_signed_non_json_body_is_malformed(self, sign_clerk_payload):
        body = "user.created for user_2abc"
        with pytest.raises(MalformedPayloadError):
            self.service.verify(body.encode(), sign_clerk_payload(body))

    def test_event_is_parsed_from_body_not_verifier(self, sign_clerk_payload):
        """The envelope comes from the request body whatever Webhook.verify returns."""
        body = json.dumps(user_event("user.deleted", deleted=True))
        headers = sign_clerk_payload(body)

        with patch(
            "helpflow.services.identity_webhook_service.Webhook.verify", return_value=None
        ) as mock_verify:
            event = self.service.verify(body.encode(), headers)

        mock_verify.assert_called_once()
        assert event["type"] == "user.deleted"
        assert event["data"]["id"] == "user_2abc"


class TestUserCreated:

    def setup_method(self):
        self.service = IdentityWebhookService(CLERK_TEST_SECRET)

    @pytest.mark.asyncio
    async def test_creates_one_inactive_free_profile(self, mock_db_session):
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = None

        result = await self.service.handle(mock_db_session, user_event("user.created"))

        assert result.success is True
        assert result.applied is True
        mock_db_session.add.assert_called_once()
        profile = mock_db_session.add.call_args.args[0]
        assert isinstance(profile, Profile)
        assert profile.clerk_user_id == "user_2abc"
        assert profile.email == "ada@example.com"
        assert profile.subscription_status == "inactive"
        assert profile.subscription_plan == "free"
        mock_db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_primary_email_writes_nothing(self, mock_db_session):
        event = user_event("user.created", email_addresses=[])

        with pytest.raises(MissingPrimaryEmailError):
            await self.service.handle(mock_db_session, event)

        mock_db_session.execute.assert_not_awaited()
        mock_db_session.add.assert_not_called()
        mock_db_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_replayed_creation_is_acknowledged(self, mock_db_session, make_profile):
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = make_profile()

        result = await self.service.handle(mock_db_session, user_event("user.created"))

        assert result.applied is False
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_database_failure_raises_persistence_error(self, mock_db_session):
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = None
        mock_db_session.commit.side_effect = OperationalError("INSERT", {}, Exception("down"))

        with pytest.raises(PersistenceError):
            await self.service.handle(mock_db_session, user_event("user.created"))

        mock_db_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_event_without_user_id_is_malformed(self, mock_db_session):
        event = user_event("user.created")
        del event["data"]["id"]

        with pytest.raises(MalformedPayloadError):
            await self.service.handle(mock_db_session, event)


class TestUserUpdated:

    def setup_method(self):
        self.service = IdentityWebhookService(CLERK_TEST_SECRET)

    @pytest.mark.asyncio
    async def test_updates_email(self, mock_db_session, make_profile):
        profile = make_profile(email="old@example.com")
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = profile

        result = await self.service.handle(mock_db_session, user_event("user.updated"))

        assert result.applied is True
        assert profile.email == "ada@example.com"
        mock_db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_user_is_soft_no_op(self, mock_db_session):
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = None

        result = await self.service.handle(mock_db_session, user_event("user.updated"))

        assert result.success is True
        assert result.applied is False
        mock_db_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unresolvable_email_leaves_profile_unchanged(self, mock_db_session, make_profile):
        profile = make_profile(email="keep@example.com")
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = profile

        event = user_event("user.updated", primary_email_address_id=None)
        result = await self.service.handle(mock_db_session, event)

        assert result.applied is False
        assert profile.email == "keep@example.com"


class TestUserDeleted:

    def setup_method(self):
        self.service = IdentityWebhookService(CLERK_TEST_SECRET)

    @pytest.mark.asyncio
    async def test_deletes_existing_profile(self, mock_db_session, make_profile):
        profile = make_profile()
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = profile

        result = await self.service.handle(
            mock_db_session, {"type": "user.deleted", "data": {"id": "user_2abc", "deleted": True}}
        )

        assert result.applied is True
        mock_db_session.delete.assert_awaited_once_with(profile)
        mock_db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_user_completes_without_error(self, mock_db_session):
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = None

        result = await self.service.handle(
            mock_db_session, {"type": "user.deleted", "data": {"id": "user_gone", "deleted": True}}
        )

        assert result.success is True
        assert result.applied is False
        mock_db_session.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_unhandled_event_type_is_acknowledged(mock_db_session):
    service = IdentityWebhookService(CLERK_TEST_SECRET)

    result = await service.handle(mock_db_session, {"type": "session.created", "data": {"id": "sess_1"}})

    assert result.success is True
    assert result.applied is False
    assert "session.created" in result.message
    mock_db_session.execute.assert_not_awaited()
