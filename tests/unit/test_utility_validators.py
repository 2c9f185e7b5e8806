"""Unit tests for utility validators, guards and input schemas."""

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from src.models.utility_bill import UtilityBillStatus, UtilityImportMethod, UtilitySplitMethod
from src.services.utility_types import (
    AllocateError,
    ReadingError,
    TransitionError,
    UtilityAllocationResult,
)
from src.services.utility_validators import (
    CreateUtilityBillInput,
    CreateUtilityReadingInput,
    allocation_sum_difference,
    can_allocate_bill,
    can_approve_bill,
    validate_allocation_sum,
    validate_custom_ratio,
    validate_new_reading,
    validate_percentage_sum,
    validate_ratio_sum,
)


def alloc(unit_id: int, amount: str, percentage: str = "50.00") -> UtilityAllocationResult:
    return UtilityAllocationResult(unit_id, Decimal(amount), Decimal(percentage))


def bill_payload(**overrides) -> dict:
    payload = {
        "property_id": 1,
        "provider_name": "City Water",
        "total_amount": "150.00",
        "bill_date": "2026-03-01",
        "due_date": "2026-03-31",
        "split_method": "EQUAL",
    }
    payload.update(overrides)
    return payload


class TestCreateUtilityBillInput:
    def test_valid_payload(self):
        data = CreateUtilityBillInput.model_validate(bill_payload())

        assert data.total_amount == Decimal("150.00")
        assert data.split_method == UtilitySplitMethod.EQUAL
        assert data.import_method == UtilityImportMethod.MANUAL_ENTRY
        assert data.bill_date == date(2026, 3, 1)

    @pytest.mark.parametrize("amount", ["0", "-10.00"])
    def test_amount_must_be_positive(self, amount):
        with pytest.raises(ValidationError):
            CreateUtilityBillInput.model_validate(bill_payload(total_amount=amount))

    def test_amount_has_at_most_two_places(self):
        with pytest.raises(ValidationError):
            CreateUtilityBillInput.model_validate(bill_payload(total_amount="10.001"))

    def test_due_date_before_bill_date(self):
        with pytest.raises(ValidationError, match="Due date must be on or after bill date"):
            CreateUtilityBillInput.model_validate(bill_payload(due_date="2026-02-01"))

    def test_period_must_not_run_backwards(self):
        with pytest.raises(ValidationError, match="Billing period"):
            CreateUtilityBillInput.model_validate(
                bill_payload(period_start="2026-02-28", period_end="2026-02-01")
            )

    @pytest.mark.parametrize("confidence", [-0.1, 1.5])
    def test_ocr_confidence_range(self, confidence):
        with pytest.raises(ValidationError):
            CreateUtilityBillInput.model_validate(bill_payload(ocr_confidence=confidence))

    def test_unknown_split_method(self):
        with pytest.raises(ValidationError):
            CreateUtilityBillInput.model_validate(bill_payload(split_method="BY_MOOD"))

    def test_provider_name_is_stripped_and_required(self):
        with pytest.raises(ValidationError):
            CreateUtilityBillInput.model_validate(bill_payload(provider_name="   "))


class TestCreateUtilityReadingInput:
    def test_valid(self):
        data = CreateUtilityReadingInput.model_validate(
            {"lease_utility_id": 4, "reading_value": "1520.5"}
        )
        assert data.reading_value == Decimal("1520.5")
        assert data.reading_date is None

    def test_negative_value(self):
        with pytest.raises(ValidationError):
            CreateUtilityReadingInput.model_validate({"lease_utility_id": 4, "reading_value": -1})


class TestCanAllocateBill:
    def test_draft_may_be_allocated(self):
        assert can_allocate_bill(UtilityBillStatus.DRAFT) is None

    @pytest.mark.parametrize(
        "status",
        [s for s in UtilityBillStatus if s != UtilityBillStatus.DRAFT],
    )
    def test_other_statuses_are_refused(self, status):
        assert can_allocate_bill(status) == AllocateError.INVALID_STATUS


class TestCanApproveBill:
    def test_processing_with_balanced_allocations(self):
        allocations = [alloc(1, "50.00"), alloc(2, "50.00")]

        refusal = can_approve_bill(UtilityBillStatus.PROCESSING, Decimal("100.00"), allocations)

        assert refusal is None

    def test_review_required_can_be_approved(self):
        allocations = [alloc(1, "100.00", "100.00")]

        assert (
            can_approve_bill(UtilityBillStatus.REVIEW_REQUIRED, Decimal("100.00"), allocations)
            is None
        )

    def test_posted(self):
        assert (
            can_approve_bill(UtilityBillStatus.POSTED, Decimal("100.00"), [])
            == TransitionError.BILL_ALREADY_POSTED
        )

    def test_draft(self):
        assert (
            can_approve_bill(UtilityBillStatus.DRAFT, Decimal("100.00"), [])
            == TransitionError.INVALID_STATUS
        )

    def test_no_allocations(self):
        assert (
            can_approve_bill(UtilityBillStatus.PROCESSING, Decimal("100.00"), [])
            == TransitionError.NO_ALLOCATIONS
        )

    def test_unbalanced(self):
        allocations = [alloc(1, "50.00"), alloc(2, "49.99")]

        assert (
            can_approve_bill(UtilityBillStatus.PROCESSING, Decimal("100.00"), allocations)
            == TransitionError.ALLOCATION_SUM_MISMATCH
        )


class TestAllocationSum:
    def test_exact_match(self):
        allocations = [alloc(1, "33.33"), alloc(2, "33.33"), alloc(3, "33.34")]

        assert validate_allocation_sum(allocations, Decimal("100.00"))
        assert allocation_sum_difference(allocations, Decimal("100.00")) == 0

    def test_one_cent_short(self):
        allocations = [alloc(1, "33.33"), alloc(2, "33.33"), alloc(3, "33.33")]

        assert not validate_allocation_sum(allocations, Decimal("100.00"))
        assert allocation_sum_difference(allocations, Decimal("100.00")) == Decimal("0.01")

    def test_percentage_sum_tolerance(self):
        allocations = [
            alloc(1, "33.33", "33.33"),
            alloc(2, "33.33", "33.33"),
            alloc(3, "33.34", "33.33"),
        ]
        assert validate_percentage_sum(allocations)
        assert not validate_percentage_sum([alloc(1, "50.00", "90.00")])


class TestRatios:
    def test_ratio_sum_exact(self):
        assert validate_ratio_sum([Decimal("0.25")] * 4)

    def test_ratio_sum_within_tolerance(self):
        assert validate_ratio_sum([Decimal("0.5"), Decimal("0.50001")])

    def test_ratio_sum_outside_tolerance(self):
        assert not validate_ratio_sum([Decimal("0.5"), Decimal("0.49")])

    @pytest.mark.parametrize(("ratio", "valid"), [("0", True), ("1", True), ("1.01", False)])
    def test_single_ratio_bounds(self, ratio, valid):
        assert validate_custom_ratio(Decimal(ratio)) is valid


class TestValidateNewReading:
    def test_first_reading(self):
        assert validate_new_reading(Decimal("0"), None) is None

    def test_increasing(self):
        assert validate_new_reading(Decimal("120"), Decimal("100")) is None

    def test_equal_to_previous(self):
        assert validate_new_reading(Decimal("100"), Decimal("100")) is None

    def test_negative(self):
        assert validate_new_reading(Decimal("-1"), None) == ReadingError.NEGATIVE_VALUE

    def test_decreasing(self):
        assert validate_new_reading(Decimal("99"), Decimal("100")) == ReadingError.DECREASING_VALUE

    def test_backdated_between_neighbours(self):
        assert validate_new_reading(Decimal("150"), Decimal("100"), Decimal("200")) is None

    def test_backdated_above_later_reading(self):
        result = validate_new_reading(Decimal("250"), Decimal("100"), Decimal("200"))

        assert result == ReadingError.DECREASING_VALUE
