"""Unit tests for scaling policy evaluation."""

import math

import pytest

from hpa_behavior.core.errors import ConfigurationError
from hpa_behavior.core.models import DirectionConfig, Policy, ScalingDirection
from hpa_behavior.scaling.policies import allowed_change, policy_allowance, policy_periods


def ten_percent_or_five_pods(select_policy):
    return DirectionConfig(
        stabilization_window_seconds=300,
        select_policy=select_policy,
        policies=(
            Policy(type="Percent", value=10, period_seconds=60),
            Policy(type="Pods", value=5, period_seconds=60),
        ),
    )


class TestPolicyAllowance:
    """Test single-policy allowances."""

    def test_periods_never_below_one(self):
        assert policy_periods(Policy(type="Pods", value=1, period_seconds=60), 15) == 1

    def test_periods_floor(self):
        assert policy_periods(Policy(type="Pods", value=1, period_seconds=10), 35) == 3

    def test_pods_policy(self):
        assert policy_allowance(Policy(type="Pods", value=4, period_seconds=15), 3, 15) == 4

    def test_percent_policy_rounds_up(self):
        assert policy_allowance(Policy(type="Percent", value=10, period_seconds=60), 81, 15) == 9

    def test_percent_policy_allows_at_least_one_pod(self):
        assert policy_allowance(Policy(type="Percent", value=10, period_seconds=60), 2, 15) == 1
        assert policy_allowance(Policy(type="Percent", value=10, period_seconds=60), 0, 15) == 1

    def test_scaled_by_periods(self):
        assert policy_allowance(Policy(type="Pods", value=2, period_seconds=5), 10, 15) == 6


class TestAllowedChange:
    """Test combining policies with selectPolicy."""

    def test_min_selects_smaller(self):
        config = ten_percent_or_five_pods("Min")
        assert allowed_change(ScalingDirection.DOWN, 80, config, 15) == 5

    def test_max_selects_larger(self):
        config = ten_percent_or_five_pods("Max")
        assert allowed_change(ScalingDirection.DOWN, 80, config, 15) == 8

    def test_disabled_allows_nothing(self):
        config = DirectionConfig(
            select_policy="Disabled",
            policies=(Policy(type="Pods", value=5, period_seconds=60),),
        )
        assert allowed_change(ScalingDirection.DOWN, 80, config, 15) == 0

    def test_no_policies_is_unbounded(self):
        config = DirectionConfig(select_policy="Max", policies=())
        assert math.isinf(allowed_change(ScalingDirection.UP, 3, config, 15))


class TestPolicyValidation:
    """Test Policy and DirectionConfig construction errors."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"type": "Nodes", "value": 1, "period_seconds": 15},
            {"type": "Pods", "value": 0, "period_seconds": 15},
            {"type": "Pods", "value": -3, "period_seconds": 15},
            {"type": "Pods", "value": 1, "period_seconds": 0},
            {"type": "Pods", "value": 1, "period_seconds": 1.5},
        ],
    )
    def test_invalid_policy(self, kwargs):
        with pytest.raises(ConfigurationError):
            Policy(**kwargs)

    def test_invalid_select_policy(self):
        with pytest.raises(ConfigurationError):
            DirectionConfig(select_policy="Average")

    def test_negative_window(self):
        with pytest.raises(ConfigurationError):
            DirectionConfig(stabilization_window_seconds=-1)

    def test_negative_tolerance(self):
        with pytest.raises(ConfigurationError):
            DirectionConfig(tolerance=-0.1)
