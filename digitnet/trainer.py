"""
trainer.py
~~~~~~~~~~

Training and evaluation loops over a sample source.

Samples are applied one at a time; a topology never has more than one
sample in flight.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Sequence

from digitnet.network import NetworkTopology
from digitnet.sample import Sample

# Configure module logger
logger = logging.getLogger(__name__)


@dataclass
class EvaluationResult:
    """Outcome of an evaluation run."""

    correct: int
    total: int

    @property
    def accuracy(self) -> float:
        if self.total == 0:
            return 0.0
        return self.correct / self.total


def train(
    topology: NetworkTopology,
    training_data: Sequence[Sample],
    epochs: int = 1,
    test_data: Optional[Sequence[Sample]] = None,
    callback: Optional[Callable[[Dict[str, Any]], None]] = None,
    yield_func: Optional[Callable[[], None]] = None
) -> int:
    """
    Train the network sample by sample.

    Args:
        topology: Network to train
        training_data: Samples with expected outputs
        epochs: Number of passes over ``training_data``
        test_data: Labeled samples evaluated after each epoch
        callback: Called after each epoch with progress information
        yield_func: Called after each sample, lets a cooperative server
            handle other work between samples

    Returns:
        int: Number of samples applied

    Raises:
        ValueError: If epochs is not positive or a sample has no expected outputs
        ShapeMismatch: If a sample does not fit the network
    """
    if epochs < 1:
        raise ValueError(f"epochs must be positive, got {epochs}")

    start_time = time.time()
    steps = 0
    for epoch in range(1, epochs + 1):
        for sample in training_data:
            if not sample.is_training:
                raise ValueError("Training samples must carry expected outputs")

            steps += 1
            topology.apply_sample(sample)

            if sample.label is not None and logger.isEnabledFor(logging.DEBUG):
                output_error = (
                    topology.output_layer.output[sample.label]
                    - sample.expected[sample.label]
                )
                logger.debug(
                    f"Training step #{steps} [digit = {sample.label}]: "
                    f"output error {output_error:.6f}"
                )

            if yield_func is not None:
                yield_func()

        correct = None
        total = None
        accuracy = None
        if test_data is not None:
            result = evaluate(topology, test_data)
            correct, total, accuracy = result.correct, result.total, result.accuracy
            logger.info(f"Epoch {epoch}/{epochs}: {correct}/{total} correct")
        else:
            logger.info(f"Epoch {epoch}/{epochs} complete")

        if callback is not None:
            callback({
                'epoch': epoch,
                'total_epochs': epochs,
                'accuracy': accuracy,
                'correct': correct,
                'total': total,
                'elapsed_time': time.time() - start_time
            })

    return steps


def evaluate(topology: NetworkTopology, test_data: Iterable[Sample]) -> EvaluationResult:
    """
    Count the samples whose most probable class matches their label.

    Each sample is applied without expected outputs, so evaluation never
    modifies the weights. Samples without a label are ignored.
    """
    correct = 0
    total = 0
    for sample in test_data:
        if sample.label is None:
            continue

        candidate = Sample.for_inference(sample.inputs, label=sample.label)
        topology.apply_sample(candidate)
        predicted = candidate.predicted_label()
        total += 1

        if predicted == sample.label:
            correct += 1
            logger.debug(
                f"OK: digit {predicted} identified with probability "
                f"{candidate.predicted[predicted]:.6f}"
            )
        else:
            logger.debug(
                f"KO: identified digit {predicted}, expected {sample.label}"
            )

    result = EvaluationResult(correct=correct, total=total)
    logger.info(f"Precision = {result.accuracy * 100:.2f}% ({correct}/{total})")
    return result
