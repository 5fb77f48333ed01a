"""
Tests for payload validation, the publish rule and the finalization gate.
"""
import pytest
from pydantic import ValidationError
from app.api.schemas import ImpactUpdateChange
from app.models.enums import ImpactStatus
from app.services.validators import (
    can_mark_final,
    can_publish,
    publish_blockers,
    validate_impact_data,
)


def _media(count):
    return {"media": [{"url": f"https://cdn.example.org/{i}.jpg"} for i in range(count)]}


class TestValidateImpactData:
    def test_valid_payload_has_no_errors(self, make_payload):
        assert validate_impact_data(make_payload(event_id="event_1")) == []

    def test_requires_event_or_campaign(self, make_payload):
        errors = validate_impact_data(make_payload())

        assert "Either event_id or campaign_id must be provided" in errors

    def test_reports_every_missing_field(self, make_payload):
        errors = validate_impact_data(make_payload(
            event_id="event_1",
            title="  ",
            description="",
            impact_date=None,
            impact_area_ids=[],
            metrics=[],
            proof={},
        ))

        assert errors == [
            "Impact date is required",
            "Title is required",
            "Description is required",
            "At least one impact area is required",
            "At least one metric is required",
            "At least one photo or video is required",
        ]

    def test_more_than_three_areas_refused(self, make_payload):
        errors = validate_impact_data(make_payload(
            event_id="event_1",
            impact_area_ids=["children_youth", "education_learning", "poverty_basic_needs", "environment_climate"],
        ))

        assert "Maximum 3 impact areas allowed" in errors

    def test_unknown_area_refused(self, make_payload):
        errors = validate_impact_data(make_payload(event_id="event_1", impact_area_ids=["space_travel"]))

        assert errors == ["Unknown impact area(s): space_travel"]

    def test_metric_and_media_items_checked(self, make_payload):
        errors = validate_impact_data(make_payload(
            event_id="event_1",
            metrics=[{"milestone": "", "value": 0}],
            proof={"media": [{"url": " "}], "quotes": [{"text": ""}]},
        ))

        assert "Metric 1: Milestone description is required" in errors
        assert "Metric 1: Value must be greater than 0" in errors
        assert "Media 1: URL is required" in errors
        assert "Quote 1: Text is required" in errors

    def test_update_checks_only_fields_that_were_set(self):
        assert validate_impact_data(ImpactUpdateChange(title="New title"), creating=False) == []
        assert validate_impact_data(ImpactUpdateChange(title=" "), creating=False) == ["Title is required"]

    def test_repeated_area_refused(self, make_payload):
        errors = validate_impact_data(make_payload(event_id="event_1", impact_area_ids=["community_inclusion"] * 3))

        assert errors == ["Duplicate impact area(s): community_inclusion"]


class TestAmountAndMetricShape:
    """Spend and metric values must be finite, and spend never negative."""

    @pytest.mark.parametrize("amount", [-5, float("nan"), float("inf")])
    def test_bad_amount_rejected_on_create(self, make_payload, amount):
        with pytest.raises(ValidationError):
            make_payload(event_id="event_1", amount_spent=amount)

    @pytest.mark.parametrize("amount", [-0.01, float("nan")])
    def test_bad_amount_rejected_on_update(self, amount):
        with pytest.raises(ValidationError):
            ImpactUpdateChange(amount_spent=amount)

    def test_nan_metric_value_rejected(self, make_payload):
        with pytest.raises(ValidationError):
            make_payload(event_id="event_1", metrics=[{"milestone": "Meals", "value": float("nan")}])

    def test_zero_amount_accepted(self, make_payload):
        assert validate_impact_data(make_payload(event_id="event_1", amount_spent=0)) == []


class TestPublishRule:
    """Test the publish precondition."""

    def test_draft_without_media_cannot_publish(self, make_record):
        """
        INVARIANT: A draft with no media cannot be published; adding one media item allows it.
        """
        draft = make_record(proof={})

        decision = can_publish(draft)
        assert decision.can_publish is False
        assert "media" in decision.reason

        with_media = make_record(proof=_media(1))
        assert can_publish(with_media).can_publish is True

    def test_money_spent_requires_receipt_or_invoice(self, make_record):
        """
        INVARIANT: Spending money without a receipt or invoice blocks publishing.
        """
        draft = make_record(amount_spent=100, proof=_media(1))

        decision = can_publish(draft)
        assert decision.can_publish is False
        assert decision.reason == "A receipt or invoice is required when money was spent"

        receipted = make_record(amount_spent=100, proof={**_media(1), "receipts": ["https://r/1"]})
        assert can_publish(receipted).can_publish is True

    def test_zero_amount_spent_needs_no_receipt(self, make_record):
        assert can_publish(make_record(amount_spent=0, proof=_media(1))).can_publish is True

    def test_only_drafts_can_publish(self, make_record):
        decision = can_publish(make_record(status=ImpactStatus.PUBLISHED))

        assert decision.can_publish is False
        assert decision.reason == "Only draft impact updates can be published"

    def test_metric_must_have_value(self, make_record):
        blockers = publish_blockers(make_record(metrics=[{"milestone": "Meals", "value": 0}]))

        assert blockers == ["At least one impact metric with a value greater than 0 is required"]


class TestFinalizationGate:
    """Test the rules for marking an update final."""

    def _strong(self, make_record, **overrides):
        data = {
            "status": ImpactStatus.PUBLISHED,
            "metrics": [{"milestone": "Meals", "value": 100}, {"milestone": "Hours", "value": 12}],
            "proof": _media(4),
        }
        data.update(overrides)
        return make_record(**data)

    def test_published_update_with_enough_proof_can_be_final(self, make_record):
        decision = can_mark_final(self._strong(make_record))

        assert decision.allowed is True
        assert decision.validation.meets_requirements is True

    def test_at_most_one_final_per_event(self, make_record):
        """
        INVARIANT: Once one update of an event is final, no other update of that event can be.
        """
        final = self._strong(make_record, is_final=True)
        other = self._strong(make_record)

        decision = can_mark_final(other, [final])

        assert decision.allowed is False
        assert decision.reason == "This event already has a final impact update marked"

    def test_final_on_another_event_does_not_block(self, make_record):
        final_elsewhere = self._strong(make_record, event_id="event_2", is_final=True)

        assert can_mark_final(self._strong(make_record), [final_elsewhere]).allowed is True

    def test_only_published_updates_can_be_final(self, make_record):
        for status in (ImpactStatus.DRAFT, ImpactStatus.VERIFIED, ImpactStatus.FLAGGED):
            decision = can_mark_final(self._strong(make_record, status=status))
            assert decision.allowed is False
            assert decision.reason == "Only published updates can be marked as final"

    def test_already_final_refused(self, make_record):
        decision = can_mark_final(self._strong(make_record, is_final=True))

        assert decision.reason == "This impact update is already marked as final"

    def test_aggregate_proof_counts_published_siblings(self, make_record):
        """Proof of sibling updates counts; drafts do not."""
        update = self._strong(make_record, proof=_media(1))
        draft_sibling = make_record(proof=_media(5))

        refused = can_mark_final(update, [draft_sibling])
        assert refused.allowed is False
        assert refused.reason.startswith("Requirements not met. Missing: Need 2 more photo(s)/video(s)")

        published_sibling = self._strong(make_record, proof=_media(3))
        assert can_mark_final(update, [published_sibling]).allowed is True

    def test_campaign_level_updates_group_by_campaign(self, make_record):
        final = self._strong(make_record, event_id=None, campaign_id="camp_1", is_final=True)
        other = self._strong(make_record, event_id=None, campaign_id="camp_1")

        decision = can_mark_final(other, [final])

        assert decision.reason == "This campaign already has a final impact update marked"
