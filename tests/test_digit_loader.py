"""
test_digit_loader.py
~~~~~~~~~~~~~~~~~~~~

Unit tests for PGM and npz sample loading.
"""

import numpy as np
import pytest

from digitnet import digit_loader
from digitnet.errors import SampleUnavailable


@pytest.mark.unit
class TestParseLabel:
    """Tests for extracting labels from file names."""

    def test_valid_names(self):
        assert digit_loader.parse_label("image-12-label-7.pgm") == 7
        assert digit_loader.parse_label("image-0-label-0.pgm") == 0

    @pytest.mark.parametrize("name", [
        "image-12-label-17.pgm",
        "image-12-label-.pgm",
        "image-12-label-x.pgm",
        "image.pgm",
    ])
    def test_invalid_names(self, name):
        with pytest.raises(SampleUnavailable):
            digit_loader.parse_label(name)


@pytest.mark.unit
class TestReadPgm:
    """Tests for the PGM reader."""

    def test_normalized_pixels(self, tmp_path, write_pgm):
        """Test that pixels are divided by the maximum value."""
        pixels = [i % 256 for i in range(784)]
        path = write_pgm(tmp_path / "a.pgm", pixels)
        values = digit_loader.read_pgm(path)
        assert values.shape == (784,)
        assert values.dtype == np.float64
        assert values[0] == 0.0
        assert values[255] == 1.0
        assert values[100] == pytest.approx(100 / 255)

    def test_header_comment(self, tmp_path, write_pgm):
        """Test that '#' comments in the header are skipped."""
        header = b"P5\n# created by a scanner\n28 28\n255\n"
        path = write_pgm(tmp_path / "c.pgm", [255] * 784, header=header)
        assert digit_loader.read_pgm(path).min() == 1.0

    def test_sixteen_bit_pixels(self, tmp_path, write_pgm):
        """Test two-byte pixels when the maximum value exceeds 255."""
        header = b"P5\n2 1\n1000\n"
        path = write_pgm(tmp_path / "w.pgm", [0x01, 0xF4, 0x03, 0xE8], header=header)
        values = digit_loader.read_pgm(path, width=2, height=1)
        assert values == pytest.approx([0.5, 1.0], abs=1e-4)

    def test_full_range_sixteen_bit(self, tmp_path, write_pgm):
        header = b"P5\n2 1\n65535\n"
        path = write_pgm(tmp_path / "f.pgm", [0x00, 0x00, 0xFF, 0xFF], header=header)
        values = digit_loader.read_pgm(path, width=2, height=1)
        assert list(values) == [0.0, 1.0]

    def test_wrong_dimensions(self, tmp_path, write_pgm):
        path = write_pgm(tmp_path / "d.pgm", [0] * 100, width=10, height=10)
        with pytest.raises(SampleUnavailable, match="dimensions"):
            digit_loader.read_pgm(path)

    def test_not_an_image(self, tmp_path, write_pgm):
        path = write_pgm(tmp_path / "m.pgm", [0] * 784, header=b"XX\n28 28\n255\n")
        with pytest.raises(SampleUnavailable):
            digit_loader.read_pgm(path)

    def test_colour_image_rejected(self, tmp_path, write_pgm):
        """Test that a colour PPM image is not taken for a digit."""
        header = b"P6\n28 28\n255\n"
        path = write_pgm(tmp_path / "rgb.ppm", [0] * 784 * 3, header=header)
        with pytest.raises(SampleUnavailable, match="grayscale"):
            digit_loader.read_pgm(path)

    def test_truncated_data(self, tmp_path, write_pgm):
        path = write_pgm(tmp_path / "t.pgm", [0] * 700)
        with pytest.raises(SampleUnavailable):
            digit_loader.read_pgm(path)

    def test_truncated_header(self, tmp_path, write_pgm):
        path = write_pgm(tmp_path / "h.pgm", [], header=b"P5\n28")
        with pytest.raises(SampleUnavailable):
            digit_loader.read_pgm(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(SampleUnavailable):
            digit_loader.read_pgm(str(tmp_path / "none.pgm"))


@pytest.mark.unit
class TestLoadFolder:
    """Tests for loading a folder of images."""

    def test_training_samples(self, image_folder):
        """Test labels, one-hot outputs and sorted order."""
        samples = digit_loader.load_pgm_folder(image_folder)
        assert [s.label for s in samples] == [3, 7, 0]
        assert samples[0].expected == [0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0]
        assert all(len(s.inputs) == 784 for s in samples)

    def test_testing_samples(self, image_folder):
        """Test that test samples keep their label but no expected outputs."""
        samples = digit_loader.load_pgm_folder(image_folder, training=False)
        assert all(s.expected is None for s in samples)
        assert [s.label for s in samples] == [3, 7, 0]

    def test_limit(self, image_folder):
        assert len(digit_loader.load_pgm_folder(image_folder, limit=2)) == 2

    def test_bad_files_skipped(self, image_folder, write_pgm):
        """Test that malformed files are skipped, not fatal."""
        write_pgm(f"{image_folder}/image-9-label-x.pgm", [0] * 784)
        write_pgm(f"{image_folder}/image-8-label-5.pgm", [0] * 10)
        samples = digit_loader.load_pgm_folder(image_folder)
        assert len(samples) == 3

    def test_missing_folder(self, tmp_path):
        with pytest.raises(SampleUnavailable):
            digit_loader.load_pgm_folder(str(tmp_path / "missing"))


@pytest.mark.unit
class TestLoadNpz:
    """Tests for the npz dataset format."""

    def test_load(self, tmp_path):
        """Test training and test splits from an archive."""
        path = tmp_path / "digits.npz"
        np.savez_compressed(
            path,
            train_images=np.full((3, 784), 0.5, dtype=np.float32),
            train_labels=np.array([1, 2, 3], dtype=np.uint8),
            test_images=np.zeros((2, 784), dtype=np.float32),
            test_labels=np.array([4, 5], dtype=np.uint8)
        )

        training, testing = digit_loader.load_npz(str(path), limit=2)

        assert len(training) == 2
        assert training[1].label == 2
        assert training[1].expected[2] == 1.0
        assert training[0].inputs[0] == 0.5
        assert [s.label for s in testing] == [4, 5]
        assert all(s.expected is None for s in testing)

    def test_missing_array(self, tmp_path):
        path = tmp_path / "partial.npz"
        np.savez(path, train_images=np.zeros((1, 784)))
        with pytest.raises(SampleUnavailable):
            digit_loader.load_npz(str(path))

    def test_square_images_flattened(self, tmp_path):
        """Test that 28x28 image arrays become flat input vectors."""
        path = tmp_path / "square.npz"
        np.savez(
            path,
            train_images=np.ones((2, 28, 28), dtype=np.float32),
            train_labels=np.array([0, 1]),
            test_images=np.zeros((1, 28, 28), dtype=np.float32),
            test_labels=np.array([9])
        )

        training, testing = digit_loader.load_npz(str(path))

        assert training[0].inputs.shape == (784,)
        assert testing[0].inputs.shape == (784,)
