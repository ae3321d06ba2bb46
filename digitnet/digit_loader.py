"""
digit_loader.py
~~~~~~~~~~~~~~~

Loading of digit samples from disk.

Two sources are supported:

- folders of 28x28 PGM images named ``image-<num>-label-<digit>.pgm``
- an ``.npz`` archive holding ``train_images``, ``train_labels``,
  ``test_images`` and ``test_labels`` arrays (see ``scripts/pack_pgm_to_npz.py``)
"""

import logging
import os
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image, UnidentifiedImageError

from digitnet.errors import SampleUnavailable
from digitnet.sample import Sample

# Configure module logger
logger = logging.getLogger(__name__)

IMAGE_WIDTH = 28
IMAGE_HEIGHT = 28
NUM_CLASSES = 10

# Prefix of the image files picked up in a folder
IMAGE_PREFIX = 'image-'

# Full pixel range of the grayscale modes Pillow decodes PGM files into
_FULL_SCALE = {
    'L': 255.0,
    'I': 65535.0,
    'I;16': 65535.0,
    'I;16B': 65535.0,
}


def parse_label(file_name: str) -> int:
    """
    Extract the digit from an image file name.

    The label is the single character between the last '-' and the first '.'
    of ``image-<num>-label-<digit>.pgm``.

    Raises:
        SampleUnavailable: If the name does not carry a digit label
    """
    dash = file_name.rfind('-')
    dot = file_name.find('.')
    if dash < 0 or dot - dash != 2:
        raise SampleUnavailable(f"Malformed image file name: {file_name}")

    digit = file_name[dash + 1]
    if not digit.isdigit():
        raise SampleUnavailable(f"Invalid image label in file name: {file_name}")
    return int(digit)


def read_pgm(
    path: str,
    width: int = IMAGE_WIDTH,
    height: int = IMAGE_HEIGHT
) -> np.ndarray:
    """
    Read a grayscale PGM image as normalized pixel values.

    Pillow rescales pixels to the full range of the image mode, so values are
    divided by that range rather than by the file's maximum value.

    Args:
        path: Image file path
        width: Required image width
        height: Required image height

    Returns:
        np.ndarray: ``width * height`` float64 values in [0.0, 1.0]

    Raises:
        SampleUnavailable: If the file is unreadable or not a matching grayscale image
    """
    try:
        with Image.open(path) as img:
            if img.size != (width, height):
                raise SampleUnavailable(
                    f"Incorrect image dimensions {img.size[0]}x{img.size[1]}: {path}"
                )
            # Decode now so truncated data fails here
            img.load()
            full_scale = _FULL_SCALE.get(img.mode)
            if full_scale is None:
                raise SampleUnavailable(
                    f"Not a grayscale image (mode {img.mode}): {path}"
                )
            pixels = np.asarray(img, dtype=np.float64)
    except (OSError, UnidentifiedImageError, ValueError) as e:
        raise SampleUnavailable(f"Cannot read image file {path}: {e}") from e

    return pixels.ravel() / full_scale


def load_sample(path: str, label: Optional[int] = None) -> Sample:
    """
    Build a sample from an image file.

    A labeled sample carries one-hot expected outputs and is used for
    training; an unlabeled one is used for inference.
    """
    pixels = read_pgm(path)
    if label is None:
        return Sample.for_inference(pixels)
    if not 0 <= label < NUM_CLASSES:
        raise SampleUnavailable(f"Label {label} out of range for {path}")
    return Sample.for_training(pixels, label, NUM_CLASSES)


def iter_image_files(folder: str) -> List[str]:
    """
    List the image file names of ``folder`` in sorted order.

    Raises:
        SampleUnavailable: If the folder cannot be listed
    """
    try:
        entries = os.listdir(folder)
    except OSError as e:
        raise SampleUnavailable(f"Cannot open directory {folder}: {e}") from e
    return sorted(name for name in entries if name.startswith(IMAGE_PREFIX))


def load_pgm_folder(
    folder: str,
    training: bool = True,
    limit: Optional[int] = None
) -> List[Sample]:
    """
    Load every labeled image of a folder.

    Files with a bad name or unreadable content are logged and skipped.

    Args:
        folder: Directory containing the images
        training: True to attach one-hot expected outputs to each sample
        limit: Maximum number of samples to load

    Returns:
        list: The loaded samples, each with its ``label`` set

    Raises:
        SampleUnavailable: If the folder itself cannot be listed
    """
    samples: List[Sample] = []
    skipped = 0
    for file_name in iter_image_files(folder):
        if limit is not None and len(samples) >= limit:
            break
        path = os.path.join(folder, file_name)
        try:
            digit = parse_label(file_name)
            if training:
                sample = load_sample(path, digit)
            else:
                sample = Sample.for_inference(read_pgm(path), label=digit)
        except SampleUnavailable as e:
            logger.error(f"Skipping {file_name}: {e}")
            skipped += 1
            continue
        samples.append(sample)

    logger.info(
        f"Loaded {len(samples)} sample(s) from {folder} ({skipped} skipped)"
    )
    return samples


def _samples_from_arrays(
    images: np.ndarray,
    labels: np.ndarray,
    training: bool,
    limit: Optional[int]
) -> List[Sample]:
    if limit is not None:
        images = images[:limit]
        labels = labels[:limit]

    # One flattened row per image
    if images.ndim > 2:
        images = images.reshape(images.shape[0], -1)

    samples = []
    for image, label in zip(images, labels):
        if training:
            samples.append(Sample.for_training(image, int(label), NUM_CLASSES))
        else:
            samples.append(Sample.for_inference(image, label=int(label)))
    return samples


def load_npz(
    path: str,
    limit: Optional[int] = None
) -> Tuple[List[Sample], List[Sample]]:
    """
    Load training and test samples from an npz archive.

    Images are expected to be normalized already; 2-D images are flattened.

    Returns:
        tuple: (training_data, test_data); training samples carry expected
        outputs, test samples only their label

    Raises:
        SampleUnavailable: If the archive is unreadable or misses an array
    """
    try:
        with np.load(path) as data:
            train_images = data['train_images']
            train_labels = data['train_labels']
            test_images = data['test_images']
            test_labels = data['test_labels']
    except (OSError, KeyError, ValueError) as e:
        raise SampleUnavailable(f"Cannot load dataset {path}: {e}") from e

    training_data = _samples_from_arrays(train_images, train_labels, True, limit)
    test_data = _samples_from_arrays(test_images, test_labels, False, None)
    logger.info(
        f"Loaded {len(training_data)} training and {len(test_data)} test "
        f"sample(s) from {path}"
    )
    return training_data, test_data
