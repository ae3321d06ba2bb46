"""
neuron.py
~~~~~~~~~

A single neuron of the layer chain: weight vector, bias and the last
activation it produced.
"""

import math
from typing import TYPE_CHECKING, List, Optional, Sequence

import numpy as np

from digitnet.activation import sigmoid, sigmoid_derivative, softmax
from digitnet.errors import ShapeMismatch

if TYPE_CHECKING:
    from digitnet.layer import Layer
    from digitnet.network import Hyperparameters

# Tolerance used to decide whether a softmax denominator was supplied
EPSILON = 1e-8


def init_weights(nb_inputs: int, rng: np.random.Generator) -> List[float]:
    """
    Draw initial weights with Xavier/Glorot scaling.

    Each weight is ``sqrt(2 / nb_inputs) * U(-1, 1)``.
    """
    deviation = math.sqrt(2.0 / nb_inputs)
    draws = rng.uniform(-1.0, 1.0, size=nb_inputs)
    return [float(deviation * w) for w in draws]


class Neuron:
    """
    Weighted-sum unit with sigmoid or softmax activation.

    Input-layer neurons are passthrough: they own a single weight fixed at
    1.0 and copy their input to their output.
    """

    def __init__(
        self,
        nb_inputs: int,
        index: int,
        rng: Optional[np.random.Generator] = None,
        passthrough: bool = False
    ):
        """
        Initialize the neuron.

        Args:
            nb_inputs: Number of inputs, i.e. width of the previous layer
            index: Position of the neuron within its layer
            rng: Random generator used to draw the initial weights
            passthrough: True for neurons of the input layer
        """
        if nb_inputs < 1:
            raise ValueError(f"A neuron needs at least one input, got {nb_inputs}")
        if passthrough and nb_inputs != 1:
            raise ShapeMismatch("passthrough neuron inputs", 1, nb_inputs)

        self.index = index
        self.passthrough = passthrough
        self.bias = 0.0
        self.output = 0.0

        if passthrough:
            self.weights = [1.0]
        else:
            if rng is None:
                rng = np.random.default_rng()
            self.weights = init_weights(nb_inputs, rng)

    @property
    def nb_inputs(self) -> int:
        return len(self.weights)

    def _check_inputs(self, what: str, values: Sequence[float]) -> None:
        if len(values) != len(self.weights):
            raise ShapeMismatch(what, len(self.weights), len(values))

    def weighted_sum(self, inputs: Sequence[float]) -> float:
        """Dot product of the inputs with the weights, plus the bias."""
        self._check_inputs("neuron inputs", inputs)
        total = 0.0
        for value, weight in zip(inputs, self.weights):
            total += value * weight
        return total + self.bias

    def forward(
        self,
        inputs: Sequence[float],
        hyper: "Hyperparameters",
        denominator: float = 0.0,
        shift: float = 0.0
    ) -> float:
        """
        Compute and cache the activation of the neuron.

        A zero denominator selects the sigmoid (internal layers), any other
        value selects the softmax (output layer).

        Args:
            inputs: Outputs of the previous layer, or the single sample value
            hyper: Network hyperparameters
            denominator: Softmax denominator of the layer, 0.0 for sigmoid
            shift: Value subtracted from the exponent along with the denominator

        Returns:
            float: The new cached output
        """
        self._check_inputs("neuron inputs", inputs)

        if self.passthrough:
            self.output = float(inputs[0])
        else:
            weighted_input = self.weighted_sum(inputs)
            if abs(denominator) < EPSILON:
                self.output = sigmoid(hyper.sigmoid_lambda, weighted_input)
            else:
                self.output = softmax(weighted_input, denominator, shift)

        return self.output

    def init_output_error(self, output_error: float) -> float:
        """
        Error gradient of an output-layer neuron.

        Uses ``o * (1 - o)``, the diagonal term of the softmax Jacobian.
        """
        return sigmoid_derivative(self.output) * output_error

    def backward(self, next_layer: "Layer", hyper: "Hyperparameters") -> float:
        """
        Error gradient of an internal-layer neuron.

        Sums the errors of the next layer weighted by the links leaving this
        neuron, then applies the sigmoid derivative.
        """
        weighted_error = 0.0
        for error, neuron in zip(next_layer.error, next_layer.neurons):
            weighted_error += error * neuron.weights[self.index]

        derivative = hyper.sigmoid_lambda * sigmoid_derivative(self.output)
        return weighted_error * derivative

    def update_weights(
        self,
        error: float,
        previous_outputs: Sequence[float],
        hyper: "Hyperparameters"
    ) -> None:
        """
        Gradient step on every weight. The bias is left unchanged.

        Args:
            error: Error gradient of this neuron from the backward pass
            previous_outputs: Outputs of the previous layer from the forward pass
            hyper: Network hyperparameters
        """
        self._check_inputs("previous layer outputs", previous_outputs)
        if self.passthrough:
            return

        step = hyper.learning_rate * error
        for i, value in enumerate(previous_outputs):
            self.weights[i] -= step * value

    def __repr__(self) -> str:
        return (
            f"Neuron(index={self.index}, nb_inputs={self.nb_inputs}, "
            f"passthrough={self.passthrough})"
        )
