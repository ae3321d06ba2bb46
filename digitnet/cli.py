"""
cli.py
~~~~~~

Command-line driver: builds a network from a configuration file, trains
it on a training set, then reports its precision on a test set.

Usage:
    digitnet CONFIG [--training-dir DIR] [--testing-dir DIR] [--data FILE.npz]
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from digitnet import digit_loader, trainer
from digitnet.config import read_config
from digitnet.errors import ConfigInvalid, SampleUnavailable
from digitnet.logging_setup import configure_logging
from digitnet.network import NetworkTopology

logger = logging.getLogger(__name__)

DEFAULT_TRAINING_DIR = os.getenv('DIGITNET_TRAINING_DIR', 'data/images/training')
DEFAULT_TESTING_DIR = os.getenv('DIGITNET_TESTING_DIR', 'data/images/testing')

# Training set cap
DEFAULT_MAX_SAMPLES = 60000


def positive_int(value: str) -> int:
    """argparse type for counts that must be at least 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='digitnet',
        description='Train and test a feedforward digit classifier.'
    )
    parser.add_argument('config', help='network configuration file')
    parser.add_argument('--training-dir', default=DEFAULT_TRAINING_DIR,
                        help='folder of training PGM images')
    parser.add_argument('--testing-dir', default=DEFAULT_TESTING_DIR,
                        help='folder of test PGM images')
    parser.add_argument('--data', default=os.getenv('DIGITNET_DATA'),
                        help='npz dataset, used instead of the image folders')
    parser.add_argument('--epochs', type=positive_int, default=1,
                        help='passes over the training set (default: 1)')
    parser.add_argument('--max-samples', type=positive_int,
                        default=DEFAULT_MAX_SAMPLES,
                        help='maximum number of training samples')
    parser.add_argument('--seed', type=int, default=None,
                        help='seed for weight initialization')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the training and test phases. Returns the process exit code."""
    configure_logging()
    args = build_parser().parse_args(argv)

    try:
        config = read_config(args.config)
    except ConfigInvalid as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    network = NetworkTopology.build(config, seed=args.seed)

    try:
        if args.data:
            training_data, test_data = digit_loader.load_npz(
                args.data, limit=args.max_samples
            )
        else:
            training_data = digit_loader.load_pgm_folder(
                args.training_dir, training=True, limit=args.max_samples
            )
            test_data = None
    except SampleUnavailable as e:
        logger.error(f"Training data unavailable: {e}")
        return 3

    print("--- TRAINING PHASE " + "-" * 60)
    steps = trainer.train(network, training_data, epochs=args.epochs)
    print(f"Applied {steps} training sample(s)")

    print("--- TEST PHASE " + "-" * 64)
    if test_data is None:
        try:
            test_data = digit_loader.load_pgm_folder(args.testing_dir, training=False)
        except SampleUnavailable as e:
            logger.error(f"Test data unavailable: {e}")
            test_data = []

    result = trainer.evaluate(network, test_data)
    print(f"Precision = {result.accuracy * 100:f}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
