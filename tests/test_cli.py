"""
test_cli.py
~~~~~~~~~~~

Integration tests for the command-line driver.
"""

import pytest

from digitnet.cli import main

CONFIG_TEXT = "input: 784\ninternal: 5\noutput: 10\nrate: 0.1\nlambda: 1.0\n"


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "network.cfg"
    path.write_text(CONFIG_TEXT)
    return str(path)


@pytest.mark.integration
class TestCli:
    """Tests for the training and test phases run from the command line."""

    def test_full_run(self, config_file, image_folder, capsys):
        """Test a run over small training and test folders."""
        code = main([
            config_file,
            '--training-dir', image_folder,
            '--testing-dir', image_folder,
            '--epochs', '2',
            '--seed', '3'
        ])

        out = capsys.readouterr().out
        assert code == 0
        assert "TRAINING PHASE" in out
        assert "Applied 6 training sample(s)" in out
        assert "Precision = " in out

    def test_max_samples(self, config_file, image_folder, capsys):
        main([config_file, '--training-dir', image_folder,
              '--testing-dir', image_folder, '--max-samples', '1'])
        assert "Applied 1 training sample(s)" in capsys.readouterr().out

    def test_invalid_config(self, tmp_path, image_folder):
        path = tmp_path / "bad.cfg"
        path.write_text("input: 784\nsize: 3\n")
        assert main([str(path), '--training-dir', image_folder]) == 2

    def test_missing_training_dir(self, config_file, tmp_path):
        code = main([config_file, '--training-dir', str(tmp_path / "missing")])
        assert code == 3

    def test_missing_testing_dir(self, config_file, image_folder, tmp_path, capsys):
        """Test that a missing test folder still completes training."""
        code = main([config_file, '--training-dir', image_folder,
                     '--testing-dir', str(tmp_path / "missing")])
        assert code == 0
        assert "Precision = 0.000000" in capsys.readouterr().out

    @pytest.mark.parametrize("option,value", [
        ('--epochs', '0'),
        ('--epochs', '-3'),
        ('--epochs', 'two'),
        ('--max-samples', '0'),
    ])
    def test_counts_must_be_positive(self, config_file, image_folder, capsys,
                                     option, value):
        """Test that non-positive counts are refused before training starts."""
        with pytest.raises(SystemExit) as excinfo:
            main([config_file, '--training-dir', image_folder, option, value])

        assert excinfo.value.code == 2
        captured = capsys.readouterr()
        assert option in captured.err
        assert "TRAINING PHASE" not in captured.out
