"""
sample.py
~~~~~~~~~

Unit of work handed to the network: input vector, optional expected
outputs (training) and the prediction slot written during inference.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from digitnet.errors import ShapeMismatch


def one_hot(label: int, num_classes: int) -> List[float]:
    """
    Build a one-hot vector for ``label``.

    Raises:
        ValueError: If the label is outside 0..num_classes-1
    """
    if not 0 <= label < num_classes:
        raise ValueError(
            f"Label must be between 0 and {num_classes - 1}, got {label}"
        )
    vector = [0.0] * num_classes
    vector[label] = 1.0
    return vector


@dataclass(eq=False)
class Sample:
    """
    A sample applied to the network.

    Attributes:
        inputs: Input values, one per input-layer neuron (float64 vector)
        expected: Expected outputs, present iff the sample is used for training
        label: Class index the sample belongs to, when known
        predicted: Output probabilities written by the network during inference
    """

    inputs: np.ndarray
    expected: Optional[List[float]] = None
    label: Optional[int] = None
    predicted: Optional[List[float]] = None

    def __post_init__(self) -> None:
        inputs = np.asarray(self.inputs, dtype=np.float64)
        if inputs.ndim != 1:
            raise ShapeMismatch("sample inputs", 1, inputs.ndim, unit="dimension")
        self.inputs = inputs
        if self.expected is not None:
            self.expected = [float(v) for v in self.expected]

    @classmethod
    def for_training(
        cls,
        inputs: Sequence[float],
        label: int,
        num_classes: int = 10
    ) -> "Sample":
        """Labeled sample whose expected outputs are the one-hot label."""
        return cls(
            inputs=inputs,
            expected=one_hot(label, num_classes),
            label=label
        )

    @classmethod
    def for_inference(
        cls,
        inputs: Sequence[float],
        label: Optional[int] = None
    ) -> "Sample":
        """Sample without expected outputs; the network fills ``predicted``."""
        return cls(inputs=inputs, label=label)

    @property
    def is_training(self) -> bool:
        return self.expected is not None

    def set_output(self, values: Sequence[float]) -> None:
        """Store ``values`` normalized so that they sum to 1.0."""
        if len(values) == 0:
            raise ValueError("Cannot store an empty output vector")
        total = sum(values)
        self.predicted = [value / total for value in values]

    def predicted_label(self) -> Optional[int]:
        """Index of the highest predicted probability (first one on ties)."""
        if not self.predicted:
            return None
        return max(range(len(self.predicted)), key=self.predicted.__getitem__)
