"""
conftest.py
~~~~~~~~~~~

Shared fixtures: small seeded networks and PGM image writers.
"""

import os

import pytest

from digitnet.config import Config
from digitnet.network import NetworkTopology


@pytest.fixture
def small_config():
    """4 inputs, one internal layer of 3, 2 outputs."""
    return Config(
        input_size=4,
        internal_sizes=[3],
        output_size=2,
        learning_rate=0.1,
        sigmoid_lambda=1.0
    )


@pytest.fixture
def small_network(small_config):
    """Seeded network built from ``small_config``."""
    return NetworkTopology.build(small_config, seed=1234)


@pytest.fixture
def write_pgm():
    """Return a function writing a binary PGM file."""

    def _write(path, pixels, width=28, height=28, max_value=255, header=None):
        if header is None:
            header = f"P5\n{width} {height}\n{max_value}\n".encode('ascii')
        with open(path, 'wb') as f:
            f.write(header)
            f.write(bytes(pixels))
        return str(path)

    return _write


@pytest.fixture
def image_folder(tmp_path, write_pgm):
    """Create a folder with three labeled 28x28 images and one stray file."""
    folder = tmp_path / "images"
    folder.mkdir()
    for num, digit in [(1, 3), (2, 7), (3, 0)]:
        value = 20 * (digit + 1)
        write_pgm(folder / f"image-{num}-label-{digit}.pgm", [value] * 784)
    (folder / "README.txt").write_text("not an image")
    return str(folder)
