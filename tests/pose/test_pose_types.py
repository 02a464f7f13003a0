"""Tests for the pose result types."""

import pytest

from netdecode.pose import NUM_KEYPOINTS, PART_NAMES, Keypoint, PartIndex, Pose, Position


def _pose(scores, score=0.5):
    keypoints = [
        Keypoint(score=s, position=Position(float(i), 2.0 * i), part=PART_NAMES[i])
        for i, s in enumerate(scores)
    ]
    return Pose(keypoints=keypoints, score=score)


class TestKeypoint:
    """Tests for Keypoint."""

    def test_is_resolved(self):
        """Test that only keypoints with a positive score are resolved."""
        assert Keypoint(0.1, Position(1.0, 2.0), "nose").is_resolved
        assert not Keypoint(0.0, Position(0.0, 0.0), "nose").is_resolved

    def test_immutable(self):
        """Test that keypoints can't be modified."""
        keypoint = Keypoint(0.1, Position(1.0, 2.0), "nose")
        with pytest.raises(AttributeError):
            keypoint.score = 0.5

    def test_position_fields(self):
        """Test Position field order."""
        position = Position(3.0, 4.0)
        assert position.x == 3.0
        assert position.y == 4.0


class TestPose:
    """Tests for Pose."""

    def test_keypoints_stored_as_tuple(self):
        """Test that a list of keypoints is converted to a tuple."""
        pose = _pose([0.5] * NUM_KEYPOINTS)
        assert isinstance(pose.keypoints, tuple)
        assert len(pose.keypoints) == NUM_KEYPOINTS

    def test_wrong_keypoint_count(self):
        """Test that a pose must have one keypoint per part."""
        with pytest.raises(ValueError, match="exactly 17 keypoints"):
            _pose([0.5] * 3)

    def test_keypoint_lookup(self):
        """Test keypoint lookup by part name, index and enum."""
        pose = _pose([i / 100 for i in range(NUM_KEYPOINTS)])

        assert pose.keypoint("leftWrist").part == "leftWrist"
        assert pose.keypoint(9).part == "leftWrist"
        assert pose.keypoint(PartIndex.LEFT_WRIST).score == pytest.approx(0.09)

    def test_unknown_part_name(self):
        """Test that an unknown part name raises KeyError."""
        with pytest.raises(KeyError):
            _pose([0.5] * NUM_KEYPOINTS).keypoint("tail")

    def test_resolved_keypoints(self):
        """Test that unresolved keypoints are filtered out."""
        scores = [0.0] * NUM_KEYPOINTS
        scores[PartIndex.NOSE] = 0.9
        scores[PartIndex.LEFT_EYE] = 0.4
        resolved = _pose(scores).resolved_keypoints()

        assert [k.part for k in resolved] == ["nose", "leftEye"]

    def test_adjacent_keypoints(self):
        """Test that adjacent keypoints honor min_confidence."""
        scores = [0.0] * NUM_KEYPOINTS
        scores[PartIndex.LEFT_SHOULDER] = 0.8
        scores[PartIndex.RIGHT_SHOULDER] = 0.7
        scores[PartIndex.LEFT_ELBOW] = 0.2
        pose = _pose(scores)

        assert [(a.part, b.part) for a, b in pose.adjacent_keypoints(0.5)] == [
            ("leftShoulder", "rightShoulder")
        ]
        assert len(pose.adjacent_keypoints(0.1)) == 2
