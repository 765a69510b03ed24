"""
Tests for actions, angle helpers and output decoders.
"""

import math

import numpy as np
import pytest


class TestAngles:
    """Tests for heading arithmetic."""

    def test_normalize_angle(self):
        from asteroids_ai.core import normalize_angle

        assert normalize_angle(370.0) == pytest.approx(10.0)
        assert normalize_angle(-90.0) == pytest.approx(270.0)
        assert normalize_angle(360.0) == pytest.approx(0.0)

    def test_shortest_delta_wraps(self):
        from asteroids_ai.core import shortest_angle_delta

        assert shortest_angle_delta(350.0, 10.0) == pytest.approx(20.0)
        assert shortest_angle_delta(10.0, 350.0) == pytest.approx(-20.0)
        assert shortest_angle_delta(0.0, 180.0) == pytest.approx(180.0)

    def test_shortest_delta_range(self):
        from asteroids_ai.core import shortest_angle_delta

        for current in range(0, 360, 37):
            for desired in range(-360, 720, 53):
                delta = shortest_angle_delta(current, desired)
                assert -180.0 < delta <= 180.0


class TestDiscreteTurnDecoder:
    """Tests for the DQN decoder."""

    def test_output_size(self):
        from asteroids_ai.core import DiscreteTurnDecoder, NUM_DISCRETE_ACTIONS

        assert DiscreteTurnDecoder().output_size == NUM_DISCRETE_ACTIONS + 1

    def test_action_flags(self):
        from asteroids_ai.core import DiscreteAction, DiscreteTurnDecoder

        decoder = DiscreteTurnDecoder()
        outputs = np.zeros(5, dtype=np.float32)

        assert decoder.decode(outputs, 0.0, DiscreteAction.THRUST).forward_thrust == 1.0
        assert decoder.decode(outputs, 0.0, DiscreteAction.BRAKE).forward_thrust == -1.0
        assert decoder.decode(outputs, 0.0, DiscreteAction.SHOOT).fire is True
        nothing = decoder.decode(outputs, 0.0, DiscreteAction.NOTHING)
        assert nothing.forward_thrust == 0.0 and not nothing.fire

    def test_heading_slot_is_shortest_turn(self):
        """A zero heading output means half a turn from north."""
        from asteroids_ai.core import DiscreteTurnDecoder

        decoder = DiscreteTurnDecoder()
        action = decoder.decode(np.zeros(5), heading=170.0, index=0)

        assert action.angle_delta == pytest.approx(10.0, abs=1e-4)

    def test_nan_heading_is_neutral(self):
        from asteroids_ai.core import DiscreteTurnDecoder

        outputs = np.array([0, 0, 0, 0, np.nan], dtype=np.float32)
        action = DiscreteTurnDecoder().decode(outputs, heading=180.0, index=0)

        assert math.isfinite(action.angle_delta)
        assert action.angle_delta == pytest.approx(0.0, abs=1e-4)


class TestContinuousDecoder:
    """Tests for the continuous Q-learning decoder."""

    def test_bounded_outputs(self):
        from asteroids_ai.core import ContinuousDecoder

        action = ContinuousDecoder().decode(np.array([100.0, -100.0, 0.0, 1.0]), heading=0.0)

        assert action.forward_thrust == pytest.approx(1.0)
        assert action.side_thrust == pytest.approx(-1.0)
        assert action.angle_delta == pytest.approx(180.0)
        assert action.fire is True

    def test_non_finite_outputs_are_neutral(self):
        from asteroids_ai.core import ContinuousDecoder

        outputs = np.array([np.nan, np.inf, np.nan, np.nan])
        action = ContinuousDecoder().decode(outputs, heading=180.0)

        assert action.forward_thrust == 0.0
        assert action.side_thrust == 0.0
        assert action.fire is False
        assert math.isfinite(action.angle_delta)


class TestThresholdDecoder:
    """Tests for the evolved-policy decoder."""

    def test_thresholds(self):
        from asteroids_ai.core import ThresholdDecoder

        outputs = np.array([0.0, 1.0, -1.0, 1.0, -1.0, 1.0])
        action = ThresholdDecoder().decode(outputs, heading=0.0)

        assert action.forward_thrust == 1.0
        assert action.side_thrust == -1.0
        assert action.fire is True
        assert action.angle_delta == pytest.approx(0.0)

    def test_turn_limited_by_max_turn(self):
        from asteroids_ai.core import ThresholdDecoder

        action = ThresholdDecoder(max_turn_deg=4.0).decode(
            np.array([50.0, 0, 0, 0, 0, 0]), heading=0.0
        )

        assert action.angle_delta == pytest.approx(4.0)

    def test_opposite_thrusts_cancel(self):
        from asteroids_ai.core import ThresholdDecoder

        action = ThresholdDecoder().decode(np.array([0, 1, 1, 1, 1, -1.0]), heading=0.0)

        assert action.forward_thrust == 0.0
        assert action.side_thrust == 0.0
        assert action.fire is False

    def test_nan_outputs(self):
        from asteroids_ai.core import ThresholdDecoder

        action = ThresholdDecoder().decode(np.full(6, np.nan), heading=0.0)

        assert action.angle_delta == 0.0
        assert action.fire is False
