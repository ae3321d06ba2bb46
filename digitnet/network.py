"""
network.py
~~~~~~~~~~

Network topology: the ordered layer chain and the hyperparameters shared by
every neuron. :meth:`NetworkTopology.apply_sample` is the single entry point
for running a sample through the network.

Per sample the chain is walked as follows:

- forward, input layer to output layer
- with expected outputs: error seeded at the output layer, backward pass
  over the internal layers from last to first, then a weight update from
  the first trainable layer to the output layer
- without expected outputs: the output cache is written to the sample
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from digitnet.config import Config
from digitnet.errors import ShapeMismatch
from digitnet.layer import Layer
from digitnet.sample import Sample

# Configure module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Hyperparameters:
    """Training parameters passed to every neuron operation."""

    learning_rate: float
    sigmoid_lambda: float


class NetworkTopology:
    """
    Chain of layers: one input layer, zero or more internal layers and one
    output layer.

    Only the weights are mutated once the topology is built. At most one
    sample may be in flight on a topology at any time.
    """

    def __init__(self, layers: Sequence[Layer], hyperparameters: Hyperparameters):
        """
        Wrap an already linked chain of layers.

        Raises:
            ValueError: If the layers do not form a single linked chain
        """
        if len(layers) < 2:
            raise ValueError("A network needs at least an input and an output layer")
        if layers[0].previous_layer is not None:
            raise ValueError("First layer must not have a predecessor")
        if layers[-1].next_layer is not None:
            raise ValueError("Last layer must not have a successor")
        for previous, current in zip(layers, layers[1:]):
            if previous.next_layer is not current or current.previous_layer is not previous:
                raise ValueError("Layers are not linked in chain order")
            if current.nb_inputs != previous.size:
                raise ShapeMismatch("layer weights", previous.size, current.nb_inputs)

        self.layers: List[Layer] = list(layers)
        self.hyperparameters = hyperparameters

    @classmethod
    def build(
        cls,
        config: Config,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None
    ) -> "NetworkTopology":
        """
        Assemble the layer chain described by ``config``.

        Args:
            config: Layer widths and hyperparameters
            rng: Generator used to draw the initial weights
            seed: Seed for a new generator when ``rng`` is not given

        Returns:
            NetworkTopology: The new network

        Raises:
            ConfigInvalid: If the configuration is out of range
        """
        config.validate()
        if rng is None:
            rng = np.random.default_rng(seed)

        input_layer = Layer(config.input_size, None, rng)
        layers = [input_layer]

        # Each new layer is linked after the last one built
        previous = input_layer
        for width in config.internal_sizes:
            previous = Layer(width, previous, rng)
            layers.append(previous)

        layers.append(Layer(config.output_size, previous, rng))

        hyper = Hyperparameters(
            learning_rate=config.learning_rate,
            sigmoid_lambda=config.sigmoid_lambda
        )
        network = cls(layers, hyper)
        logger.info(
            f"Built network with architecture {network.sizes}, "
            f"learning_rate={hyper.learning_rate}, lambda={hyper.sigmoid_lambda}"
        )
        return network

    @property
    def input_layer(self) -> Layer:
        return self.layers[0]

    @property
    def output_layer(self) -> Layer:
        return self.layers[-1]

    @property
    def internal_layers(self) -> List[Layer]:
        return self.layers[1:-1]

    @property
    def sizes(self) -> List[int]:
        """Width of every layer, input first."""
        return [layer.size for layer in self.layers]

    def _check_sample(self, sample: Sample) -> None:
        if len(sample.inputs) != self.input_layer.size:
            raise ShapeMismatch(
                "sample inputs", self.input_layer.size, len(sample.inputs)
            )
        if sample.expected is not None and len(sample.expected) != self.output_layer.size:
            raise ShapeMismatch(
                "sample expected outputs",
                self.output_layer.size,
                len(sample.expected)
            )

    def apply_sample(self, sample: Sample) -> None:
        """
        Run one sample through the network.

        Always performs the forward pass. A sample with expected outputs is
        then backpropagated and the weights are updated before returning;
        a sample without them receives its ``predicted`` probabilities.

        Raises:
            ShapeMismatch: If the sample does not fit the network, in which
                case no weight has been modified
        """
        self._check_sample(sample)
        hyper = self.hyperparameters

        self.input_layer.apply_sample(sample, hyper)
        for layer in self.layers[1:]:
            layer.forward(layer.previous_layer.output, hyper)

        if sample.expected is None:
            self.output_layer.write_prediction(sample)
            return

        self.output_layer.seed_error(sample.expected)
        for layer in reversed(self.internal_layers):
            layer.backward(hyper)

        # The input layer owns no trainable weights
        for layer in self.layers[1:]:
            layer.update_weights(hyper)

    def predict(self, inputs: Sequence[float]) -> List[float]:
        """Forward ``inputs`` and return the output probabilities."""
        sample = Sample.for_inference(inputs)
        self.apply_sample(sample)
        return sample.predicted

    def __repr__(self) -> str:
        return f"NetworkTopology(sizes={self.sizes}, hyperparameters={self.hyperparameters})"
