"""Tests for the trust scoring tables."""

import pytest

from pydantic import ValidationError

from emuready_api.database.models.trust import ADJUSTMENT_ACTIONS
from emuready_api.database.models.trust import TRUST_ACTION_WEIGHTS
from emuready_api.database.models.trust import TrustAction
from emuready_api.database.models.trust import TrustAdjustmentRequest
from emuready_api.database.models.trust import TrustLevel
from emuready_api.database.models.trust import get_action_weight
from emuready_api.database.models.trust import get_next_level
from emuready_api.database.models.trust import get_trust_level


class TestTrustActionWeights:
    """The weight table is part of the public contract."""

    def test_weight_table(self):
        assert TRUST_ACTION_WEIGHTS == {
            TrustAction.UPVOTE: 1,
            TrustAction.DOWNVOTE: 1,
            TrustAction.LISTING_CREATED: 1,
            TrustAction.LISTING_APPROVED: 10,
            TrustAction.LISTING_REJECTED: -5,
            TrustAction.MONTHLY_ACTIVE_BONUS: 10,
            TrustAction.LISTING_RECEIVED_UPVOTE: 2,
            TrustAction.LISTING_RECEIVED_DOWNVOTE: -1,
            TrustAction.LISTING_DEVELOPER_VERIFIED: 25,
            TrustAction.COMMENT_RECEIVED_UPVOTE: 1,
            TrustAction.COMMENT_RECEIVED_DOWNVOTE: -1,
            TrustAction.HELPFUL_COMMENT: 5,
            TrustAction.REPORT_CONFIRMED: 10,
            TrustAction.FALSE_REPORT: -10,
            TrustAction.GAME_SUBMISSION_APPROVED: 5,
            TrustAction.GAME_SUBMISSION_REJECTED: -2,
        }

    def test_every_action_has_a_weight_or_is_an_adjustment(self):
        for action in TrustAction:
            assert (action in TRUST_ACTION_WEIGHTS) != (action in ADJUSTMENT_ACTIONS)

    def test_report_outcomes_have_opposite_signs(self):
        assert get_action_weight(TrustAction.REPORT_CONFIRMED) > 0
        assert get_action_weight(TrustAction.FALSE_REPORT) < 0

    def test_weight_lookup_by_string(self):
        assert get_action_weight("helpful_comment") == 5

    @pytest.mark.parametrize("action", ADJUSTMENT_ACTIONS)
    def test_adjustments_have_no_fixed_weight(self, action):
        with pytest.raises(ValueError):
            get_action_weight(action)


class TestTrustLevels:
    """Test score to level mapping."""

    @pytest.mark.parametrize(
        ("score", "level"),
        [
            (-50, TrustLevel.NEWCOMER),
            (0, TrustLevel.NEWCOMER),
            (99, TrustLevel.NEWCOMER),
            (100, TrustLevel.REGULAR),
            (499, TrustLevel.REGULAR),
            (500, TrustLevel.TRUSTED),
            (999, TrustLevel.TRUSTED),
            (1000, TrustLevel.VETERAN),
            (4999, TrustLevel.VETERAN),
            (5000, TrustLevel.ELITE),
            (1_000_000, TrustLevel.ELITE),
        ],
    )
    def test_get_trust_level(self, score, level):
        assert get_trust_level(score) == level

    def test_next_level(self):
        assert get_next_level(0) == (TrustLevel.REGULAR, 100)
        assert get_next_level(100) == (TrustLevel.TRUSTED, 500)
        assert get_next_level(4999) == (TrustLevel.ELITE, 5000)

    def test_no_level_above_elite(self):
        assert get_next_level(5000) is None


class TestTrustAdjustmentRequest:
    """Test manual adjustment validation."""

    def test_zero_adjustment_rejected(self):
        with pytest.raises(ValidationError):
            TrustAdjustmentRequest(adjustment=0, reason="no-op")

    def test_reason_required(self):
        with pytest.raises(ValidationError):
            TrustAdjustmentRequest(adjustment=5, reason="")

    def test_negative_adjustment_allowed(self):
        request = TrustAdjustmentRequest(adjustment=-20, reason="Vote manipulation")
        assert request.adjustment == -20
