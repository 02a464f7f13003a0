"""Tests for the netdecode command line interface."""

import json

import numpy as np
import pytest
from click.testing import CliRunner

from netdecode.pose import PartIndex
from netdecode.scripts.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def pose_archive(tmp_path, pose_tensors):
    """npz archive holding one pose with a nose and a left eye"""
    tensors = pose_tensors()
    tensors.scores[0, 4, 4, PartIndex.NOSE] = 0.9
    tensors.scores[0, 4, 4, PartIndex.LEFT_EYE] = 0.6

    path = tmp_path / "pose.npz"
    np.savez(
        path,
        heatmap=tensors.scores,
        offsets=tensors.offsets,
        displacements_fwd=tensors.displacements_fwd,
        displacements_bwd=tensors.displacements_bwd,
    )
    return path


@pytest.fixture
def meta_file(tmp_path, meta_document):
    path = tmp_path / "model.meta"
    path.write_text(json.dumps(meta_document))
    return path


@pytest.fixture
def detection_archive(tmp_path):
    """npz archive with one confident 'dog' cell for the meta_document model"""
    output = np.zeros((1, 2, 2, 7), dtype=np.float32)
    output[0, 0, 0, 4] = 5.0
    output[0, 0, 0, 6] = 4.0

    path = tmp_path / "detect.npz"
    np.savez(path, output=output)
    return path


class TestPoseCommand:
    """Tests for the pose command."""

    def test_pose(self, runner, pose_archive):
        """Test that decoded keypoints are listed."""
        result = runner.invoke(
            cli, ["pose", str(pose_archive), "--output-stride", "8"], obj={}
        )

        assert result.exit_code == 0, result.output
        assert "1 pose(s)" in result.output
        assert "nose" in result.output
        assert "leftEye" in result.output

    def test_min_confidence_filters_keypoints(self, runner, pose_archive):
        """Test that keypoints below --min-confidence are not listed."""
        result = runner.invoke(
            cli,
            ["pose", str(pose_archive), "--output-stride", "8", "--min-confidence", "0.7"],
            obj={},
        )

        assert result.exit_code == 0, result.output
        assert "nose" in result.output
        assert "leftEye" not in result.output

    def test_max_poses_zero(self, runner, pose_archive):
        """Test that --max-poses 0 decodes nothing."""
        result = runner.invoke(cli, ["pose", str(pose_archive), "--max-poses", "0"], obj={})

        assert result.exit_code == 0, result.output
        assert "0 pose(s)" in result.output

    def test_config_file(self, runner, pose_archive, tmp_path):
        """Test that parameters are read from a config file."""
        config = tmp_path / "decoder.json"
        config.write_text(json.dumps({"pose": {"score_threshold": 0.95}}))

        result = runner.invoke(
            cli, ["pose", str(pose_archive), "--config", str(config)], obj={}
        )

        assert result.exit_code == 0, result.output
        assert "0 pose(s)" in result.output

    def test_invalid_config_file(self, runner, pose_archive, tmp_path):
        """Test that an invalid config file is reported as an error."""
        config = tmp_path / "decoder.json"
        config.write_text(json.dumps({"pose": {"output_stride": 5}}))

        result = runner.invoke(
            cli, ["pose", str(pose_archive), "--config", str(config)], obj={}
        )

        assert result.exit_code != 0
        assert "Invalid decoder config" in result.output

    def test_missing_array(self, runner, tmp_path):
        """Test that an archive without the pose arrays is reported as an error."""
        path = tmp_path / "bad.npz"
        np.savez(path, heatmap=np.zeros((1, 2, 2, 17)))

        result = runner.invoke(cli, ["pose", str(path)], obj={})

        assert result.exit_code != 0
        assert "missing array(s)" in result.output

    def test_npy_file(self, runner, tmp_path):
        """Test that a single-array .npy file is reported as an error."""
        path = tmp_path / "heatmap.npy"
        np.save(path, np.zeros((1, 2, 2, 17)))

        result = runner.invoke(cli, ["pose", str(path)], obj={})

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "is not an .npz archive" in result.output

    def test_unreadable_file(self, runner, tmp_path):
        """Test that a file numpy can't read is reported as an error."""
        path = tmp_path / "frame.npz"
        path.write_text("not numpy data")

        result = runner.invoke(cli, ["pose", str(path)], obj={})

        assert result.exit_code == 1
        assert "unable to read" in result.output

    def test_bad_tensor_shape(self, runner, tmp_path):
        """Test that decode errors are reported instead of raised."""
        path = tmp_path / "bad.npz"
        np.savez(
            path,
            heatmap=np.zeros((1, 2, 2, 3)),
            offsets=np.zeros((1, 2, 2, 34)),
            displacements_fwd=np.zeros((1, 2, 2, 32)),
            displacements_bwd=np.zeros((1, 2, 2, 32)),
        )

        result = runner.invoke(cli, ["pose", str(path)], obj={})

        assert result.exit_code != 0
        assert "17 channels" in result.output

    def test_verbose(self, runner, pose_archive):
        """Test that --verbose prints the decoding parameters."""
        result = runner.invoke(
            cli, ["--verbose", "pose", str(pose_archive), "--nms-radius", "12"], obj={}
        )

        assert result.exit_code == 0, result.output
        assert "NMS radius: 12" in result.output


class TestDetectCommand:
    """Tests for the detect command."""

    def test_detect(self, runner, detection_archive, meta_file):
        """Test that detected objects are listed with their labels."""
        result = runner.invoke(
            cli,
            ["detect", str(detection_archive), "--meta", str(meta_file), "--threshold", "0.5"],
            obj={},
        )

        assert result.exit_code == 0, result.output
        assert "Found 1 objects" in result.output
        assert "dog" in result.output

    def test_metadata_mismatch(self, runner, detection_archive):
        """Test that an output not matching the default model is reported."""
        result = runner.invoke(cli, ["detect", str(detection_archive)], obj={})

        assert result.exit_code != 0
        assert "output grid" in result.output

    def test_npy_file(self, runner, tmp_path):
        """Test that detect also rejects .npy files."""
        path = tmp_path / "output.npy"
        np.save(path, np.zeros((1, 13, 13, 425), dtype=np.float32))

        result = runner.invoke(cli, ["detect", str(path)], obj={})

        assert result.exit_code == 1
        assert "is not an .npz archive" in result.output

    def test_invalid_meta_file(self, runner, detection_archive, tmp_path):
        """Test that an unreadable .meta file is reported."""
        meta = tmp_path / "model.meta"
        meta.write_text("[]")

        result = runner.invoke(cli, ["detect", str(detection_archive), "--meta", str(meta)], obj={})

        assert result.exit_code != 0
        assert "Invalid model metadata" in result.output


class TestSkeletonCommand:
    """Tests for the skeleton command."""

    def test_skeleton(self, runner):
        """Test that the skeleton tables are printed."""
        result = runner.invoke(cli, ["skeleton"], obj={})

        assert result.exit_code == 0, result.output
        assert "pose chain" in result.output
        assert "rightAnkle" in result.output
        assert "connected parts" in result.output


def test_version(runner):
    """Test the --version option."""
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "netdecode" in result.output
