"""
test_activation.py
~~~~~~~~~~~~~~~~~~

Unit tests for the activation functions.
"""

import math

import pytest

from digitnet.activation import (
    sigmoid,
    sigmoid_derivative,
    softmax,
    softmax_denominator
)


@pytest.mark.unit
class TestSigmoid:
    """Tests for the steep sigmoid."""

    def test_sigmoid_at_zero(self):
        """Test that sigmoid(0) is one half whatever the steepness."""
        assert sigmoid(1.0, 0.0) == 0.5
        assert sigmoid(3.5, 0.0) == 0.5

    def test_sigmoid_matches_formula(self):
        """Test the value against 1 / (1 + exp(-lambda * x))."""
        for lam, x in [(1.0, 0.7), (2.0, -1.3), (0.5, 4.0)]:
            expected = 1.0 / (1.0 + math.exp(-lam * x))
            assert sigmoid(lam, x) == pytest.approx(expected, rel=1e-12)

    def test_sigmoid_range(self):
        """Test that outputs stay strictly between 0 and 1."""
        for lam in (0.5, 1.0, 2.0):
            for step in range(-100, 101):
                value = sigmoid(lam, step / 10.0)
                assert 0.0 < value < 1.0

    def test_sigmoid_large_negative_input(self):
        """Test that a very negative input does not overflow."""
        assert sigmoid(1.0, -1000.0) == pytest.approx(0.0)
        assert sigmoid(1.0, 1000.0) == pytest.approx(1.0)

    def test_steepness(self):
        """Test that a larger lambda gives a steeper curve."""
        assert sigmoid(4.0, 0.5) > sigmoid(1.0, 0.5)

    def test_sigmoid_derivative(self):
        """Test the derivative expressed from the output."""
        assert sigmoid_derivative(0.5) == 0.25
        assert sigmoid_derivative(0.0) == 0.0
        assert sigmoid_derivative(0.9) == pytest.approx(0.09)


@pytest.mark.unit
class TestSoftmax:
    """Tests for softmax and its shared denominator."""

    def _activations(self, sums):
        shift, denominator = softmax_denominator(sums)
        return [softmax(s, denominator, shift) for s in sums]

    def test_sums_to_one(self):
        """Test normalization over several weighted-sum vectors."""
        for sums in ([0.0, 0.0], [1.0, 2.0, 3.0], [-5.0, 0.3, 2.2, 7.1]):
            assert sum(self._activations(sums)) == pytest.approx(1.0, abs=1e-9)

    def test_large_sums_do_not_overflow(self):
        """Test that large finite sums still give a distribution."""
        activations = self._activations([1000.0, 999.0, -1000.0])
        assert sum(activations) == pytest.approx(1.0, abs=1e-9)
        assert activations[0] > activations[1] > activations[2]

    def test_unshifted_formula(self):
        """Test exp(x_i) / sum(exp(x_j)) without a shift."""
        sums = [0.5, 1.5]
        denominator = sum(math.exp(s) for s in sums)
        assert softmax(0.5, denominator) == pytest.approx(
            math.exp(0.5) / denominator
        )

    def test_denominator_is_at_least_one(self):
        """Test that the shifted denominator cannot be zero."""
        shift, denominator = softmax_denominator([-800.0, -900.0])
        assert shift == -800.0
        assert denominator >= 1.0
