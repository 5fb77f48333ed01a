"""
Tests for the HTTP client.

Local rules must refuse before any request is sent; the transport records
every request it sees.
"""
import json
import httpx
import pytest
from app.api.schemas import ImpactUpdateChange
from app.client import (
    GENERIC_ERROR,
    ImpactAPIError,
    ImpactClient,
    ImpactStateError,
    ImpactValidationError,
)
from app.models.enums import ImpactStatus


class RecordingTransport(httpx.MockTransport):
    def __init__(self, handler=None):
        self.requests = []

        def _handle(request):
            self.requests.append(request)
            if handler is None:
                return httpx.Response(200, json={})
            return handler(request)

        super().__init__(_handle)


def _client(transport):
    return ImpactClient(base_url="http://impact.test/api", user_id="user_123", club_id="club_123", transport=transport)


def _mutation(record):
    return {"message": "ok", "impact": record.model_dump(mode="json")}


class TestLocalGuards:
    """Refused actions never reach the network."""

    def test_non_draft_cannot_be_updated_or_deleted(self, make_record):
        """
        INVARIANT: Update and delete of a non-draft are rejected before any request.
        """
        transport = RecordingTransport()
        client = _client(transport)

        for status in (ImpactStatus.PUBLISHED, ImpactStatus.VERIFIED, ImpactStatus.FLAGGED):
            record = make_record(status=status)
            with pytest.raises(ImpactStateError):
                client.update_impact(record, ImpactUpdateChange(title="Changed"))
            with pytest.raises(ImpactStateError):
                client.delete_impact(record)

        assert transport.requests == []

    def test_publish_without_media_is_a_validation_error(self, make_record):
        transport = RecordingTransport()

        with pytest.raises(ImpactValidationError) as exc_info:
            _client(transport).publish_impact(make_record(proof={}))

        assert "media" in exc_info.value.message
        assert transport.requests == []

    def test_invalid_create_payload_is_not_sent(self, make_payload):
        transport = RecordingTransport()

        with pytest.raises(ImpactValidationError) as exc_info:
            _client(transport).create_impact(make_payload(event_id="event_1", title=""))

        assert exc_info.value.errors == ["Title is required"]
        assert transport.requests == []

    def test_final_update_cannot_be_marked_again(self, make_record):
        transport = RecordingTransport()

        with pytest.raises(ImpactStateError):
            _client(transport).mark_final(make_record(status=ImpactStatus.PUBLISHED, is_final=True))

        assert transport.requests == []


class TestRequests:
    def test_publish_sends_patch_with_identity(self, make_record):
        draft = make_record()
        published = draft.model_copy(update={"status": ImpactStatus.PUBLISHED})
        transport = RecordingTransport(lambda request: httpx.Response(200, json=_mutation(published)))

        result = _client(transport).publish_impact(draft)

        request = transport.requests[0]
        assert request.method == "PATCH"
        assert request.url.path == f"/api/impact/{draft.id}/publish"
        assert request.headers["X-User-Id"] == "user_123"
        assert request.headers["X-Club-Id"] == "club_123"
        assert result.impact.status == ImpactStatus.PUBLISHED

    def test_mark_final_leaves_aggregate_check_to_server(self, make_record):
        """A published update with thin proof is still sent; the server decides."""
        record = make_record(status=ImpactStatus.PUBLISHED, proof={})
        transport = RecordingTransport(lambda request: httpx.Response(
            400, json={"detail": {"message": "Requirements not met. Missing: photos", "reasons": ["photos"]}}
        ))

        with pytest.raises(ImpactAPIError) as exc_info:
            _client(transport).mark_final(record)

        assert len(transport.requests) == 1
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Requirements not met. Missing: photos"
        assert exc_info.value.reasons == ["photos"]

    def test_update_sends_only_set_fields(self, make_record):
        draft = make_record()
        transport = RecordingTransport(lambda request: httpx.Response(200, json=_mutation(draft)))

        _client(transport).update_impact(draft, ImpactUpdateChange(title="New title"))

        assert json.loads(transport.requests[0].content) == {"title": "New title"}

    def test_status_filter_is_sent_as_query(self):
        transport = RecordingTransport(lambda request: httpx.Response(200, json={"impacts": [], "total": 0}))

        result = _client(transport).get_event_impact("event_1", ImpactStatus.PUBLISHED)

        assert transport.requests[0].url.params["status"] == "published"
        assert result.total == 0

    def test_server_message_is_surfaced(self):
        transport = RecordingTransport(lambda request: httpx.Response(404, json={"detail": "Impact update not found"}))

        with pytest.raises(ImpactAPIError) as exc_info:
            _client(transport).get_impact("missing")

        assert exc_info.value.message == "Impact update not found"

    def test_generic_fallback_without_json_body(self):
        transport = RecordingTransport(lambda request: httpx.Response(502, text="Bad gateway"))

        with pytest.raises(ImpactAPIError) as exc_info:
            _client(transport).get_impact("impact_1")

        assert exc_info.value.message == GENERIC_ERROR


class TestCanCreateImpact:
    def test_blocked_club(self):
        body = {
            "trust_status": {
                "can_create_campaign": False,
                "can_create_event": False,
                "outstanding_impact_reports": 3,
                "overdue_days": 12,
                "reason": "3 event(s) need complete impact reports. Most overdue by 12 days.",
            },
            "outstanding_reports": [],
        }
        transport = RecordingTransport(lambda request: httpx.Response(200, json=body))

        assert _client(transport).can_create_impact("club_123") is False

    def test_fails_open_when_check_fails(self):
        def _refuse_connection(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport = RecordingTransport(_refuse_connection)

        assert _client(transport).can_create_impact("club_123") is True
