"""
test_sample.py
~~~~~~~~~~~~~~

Unit tests for samples.
"""

import pytest

from digitnet.errors import ShapeMismatch
from digitnet.sample import Sample, one_hot


@pytest.mark.unit
class TestSample:
    """Tests for sample construction and predictions."""

    def test_one_hot(self):
        assert one_hot(2, 4) == [0.0, 0.0, 1.0, 0.0]
        with pytest.raises(ValueError):
            one_hot(10, 10)
        with pytest.raises(ValueError):
            one_hot(-1, 10)

    def test_for_training(self):
        sample = Sample.for_training([0, 128, 255], 1, 3)
        assert sample.is_training
        assert sample.expected == [0.0, 1.0, 0.0]
        assert sample.label == 1
        assert list(sample.inputs) == [0.0, 128.0, 255.0]

    def test_for_inference(self):
        sample = Sample.for_inference([0.5, 0.5], label=4)
        assert not sample.is_training
        assert sample.label == 4
        assert sample.predicted is None
        assert sample.predicted_label() is None

    def test_set_output_normalizes(self):
        """Test that stored outputs sum to one."""
        sample = Sample.for_inference([0.0])
        sample.set_output([1.0, 3.0])
        assert sample.predicted == [0.25, 0.75]
        assert sample.predicted_label() == 1

    def test_set_output_empty(self):
        with pytest.raises(ValueError):
            Sample.for_inference([0.0]).set_output([])

    def test_predicted_label_first_on_ties(self):
        sample = Sample.for_inference([0.0])
        sample.set_output([0.4, 0.4, 0.2])
        assert sample.predicted_label() == 0

    def test_nested_inputs_rejected(self):
        """Test that only flat input vectors are accepted."""
        with pytest.raises(ShapeMismatch, match="expected 1 dimension, got 2"):
            Sample.for_inference([[0.0, 1.0], [0.5, 0.5]])
        with pytest.raises(ShapeMismatch):
            Sample.for_training([[0.0, 1.0]], 0, 2)

    def test_scalar_inputs_rejected(self):
        with pytest.raises(ShapeMismatch):
            Sample.for_inference(0.5)
