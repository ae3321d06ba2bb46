#!/usr/bin/env python3
"""
Pack folders of PGM digit images into a single NPZ dataset.

Loading tens of thousands of small image files is slow; the packed archive
is read in one go by ``digitnet.digit_loader.load_npz`` (set ``DIGITNET_DATA``
or pass ``--data`` to the CLI).

Usage:
    python scripts/pack_pgm_to_npz.py [TRAINING_DIR] [TESTING_DIR] [OUTPUT]

The script will:
1. Read every ``image-<num>-label-<digit>.pgm`` file of both folders
2. Save the pixels and labels as a compressed npz archive
3. Verify the archive holds the same data
"""

import os
import sys
from typing import Tuple

import numpy as np

from digitnet.digit_loader import iter_image_files, parse_label, read_pgm
from digitnet.errors import SampleUnavailable


def load_folder(folder: str) -> Tuple[np.ndarray, np.ndarray]:
    """
    Read every labeled image of a folder.

    Parameters:
    -----------
    folder : str
        Directory containing the PGM images

    Returns:
    --------
    tuple
        (images, labels): float32 array of shape (n, 784) and uint8 labels
    """
    print(f"📂 Reading images from: {folder}")

    images = []
    labels = []
    skipped = 0
    for file_name in iter_image_files(folder):
        try:
            label = parse_label(file_name)
            pixels = read_pgm(os.path.join(folder, file_name))
        except SampleUnavailable as e:
            print(f"   ⚠️  Skipping {file_name}: {e}")
            skipped += 1
            continue
        images.append(pixels.astype(np.float32))
        labels.append(label)

    print(f"✅ Read {len(images)} images ({skipped} skipped)")
    if not images:
        return np.zeros((0, 0), dtype=np.float32), np.zeros(0, dtype=np.uint8)
    return np.stack(images), np.asarray(labels, dtype=np.uint8)


def save_as_npz(training: Tuple, testing: Tuple, filepath: str) -> None:
    """
    Save both datasets in one compressed NPZ archive.

    Parameters:
    -----------
    training : tuple
        (images, labels) of the training set
    testing : tuple
        (images, labels) of the test set
    filepath : str
        Output path for the .npz file
    """
    print(f"\n💾 Writing NPZ archive: {filepath}")

    np.savez_compressed(
        filepath,
        train_images=training[0],
        train_labels=training[1],
        test_images=testing[0],
        test_labels=testing[1]
    )

    npz_size = os.path.getsize(filepath) / (1024 * 1024)  # MB
    print(f"✅ Saved successfully (size: {npz_size:.2f} MB)")


def verify_archive(filepath: str, training: Tuple, testing: Tuple) -> bool:
    """
    Verify that the NPZ archive contains the data that was read.

    Returns:
    --------
    bool
        True if verification passes
    """
    print("\n🔍 Verifying archive...")

    with np.load(filepath) as data:
        assert np.array_equal(data['train_images'], training[0]), \
            "Training images don't match!"
        assert np.array_equal(data['train_labels'], training[1]), \
            "Training labels don't match!"
        assert np.array_equal(data['test_images'], testing[0]), \
            "Test images don't match!"
        assert np.array_equal(data['test_labels'], testing[1]), \
            "Test labels don't match!"

    print("✅ Verification passed! Data is identical.")
    return True


def main():
    """Main packing function."""
    print("=" * 60)
    print("Digit Dataset Packer")
    print("PGM folders → NPZ archive")
    print("=" * 60)

    script_dir = os.path.dirname(os.path.abspath(__file__))
    project_root = os.path.dirname(script_dir)
    images_dir = os.path.join(project_root, 'data', 'images')

    args = sys.argv[1:]
    training_dir = args[0] if len(args) > 0 else os.path.join(images_dir, 'training')
    testing_dir = args[1] if len(args) > 1 else os.path.join(images_dir, 'testing')
    npz_path = args[2] if len(args) > 2 else os.path.join(project_root, 'data', 'digits.npz')

    try:
        training = load_folder(training_dir)
        testing = load_folder(testing_dir)
    except SampleUnavailable as e:
        print(f"❌ Error: {e}")
        sys.exit(1)

    save_as_npz(training, testing, npz_path)
    verify_archive(npz_path, training, testing)

    print("\n" + "=" * 60)
    print("✅ PACKING COMPLETE!")
    print("=" * 60)
    print(f"\n📝 Next step: DIGITNET_DATA={npz_path} digitnet CONFIG")


if __name__ == '__main__':
    main()
