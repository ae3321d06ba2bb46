"""
activation.py
~~~~~~~~~~~~~

Activation functions used by the propagation engine.

- sigmoid with a steepness parameter (internal layers)
- softmax (output layer)
- the derivative form ``o * (1 - o)`` shared by both during backpropagation
"""

import math
from typing import Sequence, Tuple


def sigmoid(lam: float, value: float) -> float:
    """
    Logistic function ``1 / (1 + exp(-lam * x))``.

    Args:
        lam: Steepness of the curve
        value: Weighted input

    Returns:
        float: Activation in the open interval (0, 1) for moderate inputs
    """
    z = lam * value
    if z >= 0.0:
        return 1.0 / (1.0 + math.exp(-z))
    # Same function, arranged so exp() never overflows for large negative z
    e = math.exp(z)
    return e / (1.0 + e)


def softmax_denominator(weighted_sums: Sequence[float]) -> Tuple[float, float]:
    """
    Compute the shared softmax denominator of an output layer.

    The largest weighted sum is subtracted from every exponent. The
    returned shift must be passed back to :func:`softmax` for each neuron.

    Args:
        weighted_sums: Weighted sum of every neuron in the layer

    Returns:
        tuple: (shift, denominator), denominator is always >= 1.0
    """
    shift = max(weighted_sums)
    denominator = sum(math.exp(s - shift) for s in weighted_sums)
    return shift, denominator


def softmax(value: float, denominator: float, shift: float = 0.0) -> float:
    """Softmax of one neuron: ``exp(x_i - shift) / denominator``."""
    return math.exp(value - shift) / denominator


def sigmoid_derivative(output: float) -> float:
    """Derivative of the logistic function expressed from its output."""
    return output * (1.0 - output)
