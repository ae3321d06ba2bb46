"""
layer.py
~~~~~~~~

One layer of the chain. A layer owns its neurons and the output and error
caches written by the last forward and backward passes. Links to the
neighbouring layers are plain references; a missing link marks the input
or output end of the chain.

Each operation here acts on this layer only. Walking the chain is the job
of :class:`digitnet.network.NetworkTopology`.
"""

from typing import TYPE_CHECKING, List, Optional, Sequence

import numpy as np

from digitnet.activation import softmax_denominator
from digitnet.errors import ShapeMismatch
from digitnet.neuron import Neuron

if TYPE_CHECKING:
    from digitnet.network import Hyperparameters
    from digitnet.sample import Sample


class Layer:
    """A fixed-width layer of neurons."""

    def __init__(
        self,
        size: int,
        previous_layer: Optional["Layer"] = None,
        rng: Optional[np.random.Generator] = None
    ):
        """
        Create the layer and link it after ``previous_layer``.

        Args:
            size: Number of neurons
            previous_layer: Preceding layer, None for the input layer
            rng: Random generator for weight initialization
        """
        if size < 1:
            raise ValueError(f"Layer width must be positive, got {size}")

        self.previous_layer = previous_layer
        self.next_layer: Optional["Layer"] = None

        if previous_layer is not None:
            previous_layer.next_layer = self
            nb_inputs = previous_layer.size
            passthrough = False
        else:
            nb_inputs = 1
            passthrough = True

        self.neurons: List[Neuron] = [
            Neuron(nb_inputs, i, rng=rng, passthrough=passthrough)
            for i in range(size)
        ]
        self.output: List[float] = [0.0] * size
        self.error: List[float] = [0.0] * size

    @property
    def size(self) -> int:
        return len(self.neurons)

    @property
    def nb_inputs(self) -> int:
        """Weight-vector length shared by every neuron of the layer."""
        return self.neurons[0].nb_inputs

    @property
    def is_input(self) -> bool:
        return self.previous_layer is None

    @property
    def is_output(self) -> bool:
        return self.next_layer is None

    def apply_sample(self, sample: "Sample", hyper: "Hyperparameters") -> List[float]:
        """
        Copy the sample inputs into the output cache of the input layer.

        Raises:
            ValueError: If this is not the input layer
            ShapeMismatch: If the sample width differs from the layer width
        """
        if not self.is_input:
            raise ValueError("Samples can only be applied to the input layer")
        if len(sample.inputs) != self.size:
            raise ShapeMismatch("sample inputs", self.size, len(sample.inputs))

        for i, (neuron, value) in enumerate(zip(self.neurons, sample.inputs)):
            self.output[i] = neuron.forward((value,), hyper)
        return self.output

    def forward(
        self,
        inputs: Sequence[float],
        hyper: "Hyperparameters"
    ) -> List[float]:
        """
        Compute every activation of the layer from the previous layer outputs.

        The output layer uses softmax and needs a first pass over the
        weighted sums to build the shared denominator.
        """
        if len(inputs) != self.nb_inputs:
            raise ShapeMismatch("layer inputs", self.nb_inputs, len(inputs))

        denominator = 0.0
        shift = 0.0
        if self.is_output:
            shift, denominator = softmax_denominator(
                [neuron.weighted_sum(inputs) for neuron in self.neurons]
            )

        for i, neuron in enumerate(self.neurons):
            self.output[i] = neuron.forward(inputs, hyper, denominator, shift)
        return self.output

    def seed_error(self, expected: Sequence[float]) -> None:
        """
        Initialize the error gradients of the output layer from the
        expected outputs of a training sample.
        """
        if len(expected) != self.size:
            raise ShapeMismatch("sample expected outputs", self.size, len(expected))

        for i, neuron in enumerate(self.neurons):
            output_error = self.output[i] - expected[i]
            self.error[i] = neuron.init_output_error(output_error)

    def backward(self, hyper: "Hyperparameters") -> None:
        """Compute the error gradients of an internal layer from the next layer."""
        if self.is_input or self.is_output:
            raise ValueError("Backward pass only applies to internal layers")

        for i, neuron in enumerate(self.neurons):
            self.error[i] = neuron.backward(self.next_layer, hyper)

    def update_weights(self, hyper: "Hyperparameters") -> None:
        """Apply the cached error gradients to the weights of every neuron."""
        if self.is_input:
            return

        previous_outputs = self.previous_layer.output
        for neuron, error in zip(self.neurons, self.error):
            neuron.update_weights(error, previous_outputs, hyper)

    def write_prediction(self, sample: "Sample") -> None:
        """Store the output cache on the sample as normalized probabilities."""
        sample.set_output(self.output)

    def __repr__(self) -> str:
        if self.is_input:
            role = "input"
        elif self.is_output:
            role = "output"
        else:
            role = "internal"
        return f"Layer(size={self.size}, role={role})"
