import pytest

from elevation_bonus.domain.eligibility import EligibilityValidator
from elevation_bonus.domain.errors import (
    AlreadyUsedThisRound,
    BonusNotUsableNow,
    InsufficientStock,
    InvalidDayIndex,
    MissingDuelParameters,
    MissingTarget,
    UnknownBonusType,
)
from elevation_bonus.domain.stock_ledger import StockLedger
from elevation_bonus.domain.usage_registry import UsageRegistry
from elevation_bonus.models.dc_models import ActivationRequestModel
from elevation_bonus.models.schema_models import BonusType, RoundContextSchema, UsageStatus
from tests.helpers import make_usage

REGULAR_DAY = RoundContextSchema()


@pytest.fixture
def ledger(catalog) -> StockLedger:
    return StockLedger(catalog, {"alice": None, "bruno": {"duel": 0, "sabotage": 0}})


@pytest.fixture
def registry() -> UsageRegistry:
    return UsageRegistry([make_usage("shield", "alice", round_number=3)])


@pytest.fixture
def validator(catalog, ledger, registry) -> EligibilityValidator:
    return EligibilityValidator(catalog, ledger, registry)


def request(bonus_type: str, round_number: int = 3, **fields) -> ActivationRequestModel:
    return ActivationRequestModel(bonus_type=bonus_type, round_number=round_number, **fields)


def test_unknown_bonus_type(validator: EligibilityValidator):
    with pytest.raises(UnknownBonusType):
        validator.validate("alice", request("teleport"), REGULAR_DAY)


def test_empty_stock(validator: EligibilityValidator):
    with pytest.raises(InsufficientStock):
        validator.validate("bruno", request("sabotage", target_id="alice"), REGULAR_DAY)


def test_stock_is_checked_before_parameters(validator: EligibilityValidator):
    with pytest.raises(InsufficientStock):
        validator.validate("bruno", request("duel"), REGULAR_DAY)


def test_second_use_in_the_same_round(validator: EligibilityValidator):
    with pytest.raises(AlreadyUsedThisRound) as excinfo:
        validator.validate("alice", request("shield"), REGULAR_DAY)
    assert excinfo.value.detail["round_number"] == 3


def test_same_type_in_another_round_is_allowed(validator: EligibilityValidator):
    approval = validator.validate("alice", request("shield", round_number=4), REGULAR_DAY)
    assert approval.bonus_type == BonusType.shield


def test_cancelled_usage_does_not_block(catalog, ledger):
    registry = UsageRegistry([make_usage("shield", "alice", round_number=3, status=UsageStatus.cancelled)])
    approval = EligibilityValidator(catalog, ledger, registry).validate("alice", request("shield"), REGULAR_DAY)
    assert approval.round_number == 3


@pytest.mark.parametrize(
    "fields",
    [{}, {"target_id": "bruno"}, {"criteria_id": "only_run"}, {"target_id": "", "criteria_id": "only_run"}],
)
def test_duel_requires_target_and_criteria(validator: EligibilityValidator, ledger: StockLedger, fields):
    with pytest.raises(MissingDuelParameters):
        validator.validate("alice", request("duel", **fields), REGULAR_DAY)
    assert ledger.get("alice")["duel"] == 2
    assert ledger.changed() == {}


def test_sabotage_requires_target(validator: EligibilityValidator):
    with pytest.raises(MissingTarget):
        validator.validate("alice", request("sabotage"), REGULAR_DAY)


@pytest.mark.parametrize("day_index", [None, -1, 5, 12])
def test_multiplier_day_index_out_of_range(validator: EligibilityValidator, day_index):
    with pytest.raises(InvalidDayIndex):
        validator.validate("alice", request("multiplier", day_index=day_index), REGULAR_DAY)


def test_multiplier_on_a_valid_day(validator: EligibilityValidator):
    approval = validator.validate("alice", request("multiplier", day_index=2), REGULAR_DAY)
    assert approval.day_index == 2
    assert approval.target_id is None


def test_duel_refused_on_final_day(validator: EligibilityValidator):
    with pytest.raises(BonusNotUsableNow):
        validator.validate(
            "alice",
            request("duel", target_id="bruno", criteria_id="only_bike"),
            RoundContextSchema(is_final_day=True),
        )


def test_shield_refused_in_final_round(validator: EligibilityValidator):
    with pytest.raises(BonusNotUsableNow):
        validator.validate("alice", request("shield", round_number=5), RoundContextSchema(is_final_round=True))


def test_parameters_are_checked_before_round_context(validator: EligibilityValidator):
    with pytest.raises(MissingDuelParameters):
        validator.validate("alice", request("duel"), RoundContextSchema(is_final_day=True))


def test_approval_only_keeps_fields_of_its_type(validator: EligibilityValidator):
    approval = validator.validate(
        "alice",
        request("sabotage", target_id="bruno", criteria_id="only_run", day_index=1),
        REGULAR_DAY,
    )
    assert approval.target_id == "bruno"
    assert approval.criteria_id is None
    assert approval.day_index is None


def test_validation_does_not_mutate_state(validator: EligibilityValidator, ledger, registry):
    validator.validate("alice", request("duel", target_id="bruno", criteria_id="only_run"), REGULAR_DAY)
    assert ledger.changed() == {}
    assert registry.changed() == []
