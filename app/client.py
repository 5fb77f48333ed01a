"""
HTTP client for the impact reporting API.

Local rules run before any request is sent: payloads are validated, and
edit/delete/publish/mark-final are checked against the lifecycle table using
the record the caller already holds. A refused action never reaches the
network.
"""
from typing import Any, Dict, Optional

import httpx

from app.api.schemas import (
    FinalDecision,
    ImpactListResponse,
    ImpactMutationResponse,
    ImpactSummaryResponse,
    ImpactUpdateChange,
    ImpactUpdateCreate,
    ImpactUpdateRecord,
    PublishValidation,
    ReputationScore,
    TrustStatusResponse,
)
from app.config import API_URL
from app.log import get_logger
from app.models.enums import ImpactAction, ImpactStatus, UserRole
from app.services.lifecycle import check_transition
from app.services.validators import validate_impact_data

logger = get_logger("client")

GENERIC_ERROR = "Something went wrong. Please try again."


class ImpactClientError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ImpactValidationError(ImpactClientError):
    """Payload or record failed a local rule. No request was sent."""
    def __init__(self, message: str, errors=None):
        super().__init__(message)
        self.errors = list(errors or [message])


class ImpactStateError(ImpactClientError):
    """The record's lifecycle state does not allow the action. No request was sent."""


class ImpactAPIError(ImpactClientError):
    """The server answered with an error status or could not be reached."""
    def __init__(self, message: str, status_code: Optional[int] = None, reasons=None):
        super().__init__(message)
        self.status_code = status_code
        self.reasons = list(reasons or [])


class ImpactClient:
    """Synchronous client, one request per call and no retries."""

    def __init__(
        self,
        base_url: str = API_URL,
        token: Optional[str] = None,
        user_id: Optional[str] = None,
        club_id: Optional[str] = None,
        role: UserRole = UserRole.HOST,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 10.0,
    ):
        headers = {"X-User-Role": UserRole(role).value}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if user_id:
            headers["X-User-Id"] = user_id
        if club_id:
            headers["X-Club-Id"] = club_id
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self) -> None:
        self._client.close()

    # ---- Transport ----
    def _request(self, method: str, path: str, json: Any = None, params: Optional[Dict[str, Any]] = None) -> Any:
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        try:
            response = self._client.request(method, path, json=json, params=params or None)
        except httpx.HTTPError as e:
            logger.warning("impact_api_unreachable", method=method, path=path, error=str(e))
            raise ImpactAPIError(GENERIC_ERROR) from e

        if response.is_error:
            message, reasons = _error_details(response)
            logger.info("impact_api_error", method=method, path=path, status=response.status_code, message=message)
            raise ImpactAPIError(message, response.status_code, reasons)
        return response.json()

    @staticmethod
    def _guard(impact: ImpactUpdateRecord, action: ImpactAction, evaluate_guard: bool = True) -> None:
        check = check_transition(impact, action, evaluate_guard=evaluate_guard)
        if check.allowed:
            return
        if check.guard_failed:
            raise ImpactValidationError(check.reason)
        raise ImpactStateError(check.reason)

    # ---- Impact updates ----
    def create_impact(self, data: ImpactUpdateCreate) -> ImpactMutationResponse:
        errors = validate_impact_data(data, creating=True)
        if errors:
            raise ImpactValidationError("Impact update is not valid", errors)
        body = self._request("POST", "/impact", json=data.model_dump(mode="json", exclude_none=True))
        return ImpactMutationResponse.model_validate(body)

    def get_event_impact(self, event_id: str, status: Optional[ImpactStatus] = None) -> ImpactListResponse:
        body = self._request("GET", f"/events/{event_id}/impact", params={"status": _value(status)})
        return ImpactListResponse.model_validate(body)

    def get_event_impact_summary(self, event_id: str) -> ImpactSummaryResponse:
        return ImpactSummaryResponse.model_validate(self._request("GET", f"/events/{event_id}/impact/summary"))

    def get_campaign_impact(self, campaign_id: str, status: Optional[ImpactStatus] = None) -> ImpactListResponse:
        body = self._request("GET", f"/campaigns/{campaign_id}/impact", params={"status": _value(status)})
        return ImpactListResponse.model_validate(body)

    def get_campaign_impact_summary(self, campaign_id: str) -> ImpactSummaryResponse:
        return ImpactSummaryResponse.model_validate(self._request("GET", f"/campaigns/{campaign_id}/impact/summary"))

    def get_club_impact(
        self,
        club_id: str,
        status: Optional[ImpactStatus] = None,
        event_id: Optional[str] = None,
        campaign_id: Optional[str] = None,
    ) -> ImpactListResponse:
        body = self._request("GET", f"/clubs/{club_id}/impact", params={
            "status": _value(status),
            "event_id": event_id,
            "campaign_id": campaign_id,
        })
        return ImpactListResponse.model_validate(body)

    def get_club_score(self, club_id: str) -> ReputationScore:
        return ReputationScore.model_validate(self._request("GET", f"/clubs/{club_id}/impact/score"))

    def get_impact(self, impact_id: str) -> ImpactUpdateRecord:
        return ImpactUpdateRecord.model_validate(self._request("GET", f"/impact/{impact_id}"))

    def update_impact(self, impact: ImpactUpdateRecord, data: ImpactUpdateChange) -> ImpactMutationResponse:
        self._guard(impact, ImpactAction.EDIT)
        errors = validate_impact_data(data, creating=False)
        if errors:
            raise ImpactValidationError("Impact update is not valid", errors)
        body = self._request(
            "PUT", f"/impact/{impact.id}", json=data.model_dump(mode="json", exclude_unset=True)
        )
        return ImpactMutationResponse.model_validate(body)

    def delete_impact(self, impact: ImpactUpdateRecord) -> str:
        self._guard(impact, ImpactAction.DELETE)
        return self._request("DELETE", f"/impact/{impact.id}")["message"]

    def publish_impact(self, impact: ImpactUpdateRecord) -> ImpactMutationResponse:
        self._guard(impact, ImpactAction.PUBLISH)
        return ImpactMutationResponse.model_validate(self._request("PATCH", f"/impact/{impact.id}/publish"))

    def validate_impact(self, impact_id: str) -> PublishValidation:
        return PublishValidation.model_validate(self._request("GET", f"/impact/{impact_id}/validation"))

    def can_mark_final(self, impact_id: str) -> FinalDecision:
        return FinalDecision.model_validate(self._request("GET", f"/impact/{impact_id}/can-mark-final"))

    def mark_final(self, impact: ImpactUpdateRecord) -> ImpactMutationResponse:
        # Aggregate proof needs the sibling updates, so the server decides that part
        self._guard(impact, ImpactAction.MARK_FINAL, evaluate_guard=False)
        return ImpactMutationResponse.model_validate(self._request("PATCH", f"/impact/{impact.id}/mark-final"))

    # ---- Trust ----
    def get_club_trust_status(self, club_id: str) -> TrustStatusResponse:
        return TrustStatusResponse.model_validate(self._request("GET", f"/clubs/{club_id}/impact/trust"))

    def can_create_impact(self, club_id: str) -> bool:
        """Whether the club may create events and campaigns. Fails open if the check itself fails."""
        try:
            status = self.get_club_trust_status(club_id).trust_status
        except ImpactAPIError as e:
            logger.warning("trust_check_failed", club_id=club_id, error=e.message)
            return True
        return status.can_create_event and status.can_create_campaign


def _value(status: Optional[ImpactStatus]) -> Optional[str]:
    return ImpactStatus(status).value if status else None


def _error_details(response: httpx.Response):
    """Message and reasons from a FastAPI error body, or a generic fallback."""
    try:
        body = response.json()
    except ValueError:
        return GENERIC_ERROR, []

    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, str):
        return detail, []
    if isinstance(detail, dict):
        return detail.get("message") or GENERIC_ERROR, detail.get("reasons") or []
    if isinstance(detail, list):
        # Request validation errors
        return GENERIC_ERROR, [str(item.get("msg", item)) for item in detail if isinstance(item, dict)]
    return GENERIC_ERROR, []
