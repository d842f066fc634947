"""Tests for landmark decoding and display projection."""

import numpy as np
import pytest

from blaze_pose.core.affine import scale_matrix, translation_matrix, mul
from blaze_pose.core.keypoints import (
    LANDMARK_NAMES,
    NUM_KEYPOINTS,
    KeypointSample,
    decode_keypoints,
    image_to_display,
    project_keypoints,
)

from conftest import make_landmarks


def _sample(visibility, presence):
    return KeypointSample(
        index=0,
        position=np.zeros(2, dtype=np.float32),
        depth=0.0,
        visibility=visibility,
        presence=presence,
    )


class TestVisibility:

    def test_both_above_threshold_is_visible(self):
        assert _sample(0.6, 0.6).visible

    def test_low_visibility_is_hidden(self):
        assert not _sample(0.4, 0.9).visible

    def test_low_presence_is_hidden(self):
        assert not _sample(0.9, 0.4).visible

    def test_threshold_is_exclusive(self):
        assert not _sample(0.5, 0.9).visible
        assert not _sample(0.9, 0.5).visible


class TestImageToDisplay:

    def test_image_center_maps_to_origin(self):
        np.testing.assert_allclose(image_to_display((320, 240), 640, 480), (0.0, 0.0))

    def test_scaled_by_height(self):
        np.testing.assert_allclose(image_to_display((640, 480), 640, 480), (320 / 480, 0.5))
        np.testing.assert_allclose(image_to_display((0, 0), 640, 480), (-320 / 480, -0.5))


class TestDecodeKeypoints:

    def test_applies_crop_transform(self):
        m2 = mul(translation_matrix((100.0, 50.0)), scale_matrix((2.0, -2.0)))
        raw = make_landmarks(xy=(10.0, 20.0))
        samples = decode_keypoints(raw, m2)
        assert len(samples) == NUM_KEYPOINTS
        np.testing.assert_allclose(samples[0].position, (120.0, 10.0))

    def test_reads_depth_visibility_presence(self):
        raw = np.zeros((NUM_KEYPOINTS, 5), dtype=np.float32)
        raw[4] = (1.0, 2.0, -7.5, 0.8, 0.3)
        samples = decode_keypoints(raw, np.eye(3, dtype=np.float32))
        assert samples[4].depth == pytest.approx(-7.5)
        assert samples[4].visibility == pytest.approx(0.8)
        assert samples[4].presence == pytest.approx(0.3)
        assert not samples[4].visible

    def test_rejects_short_tensor(self):
        with pytest.raises(ValueError):
            decode_keypoints(np.zeros(5 * NUM_KEYPOINTS - 1), np.eye(3))

    def test_ignores_trailing_values(self):
        raw = np.zeros(5 * NUM_KEYPOINTS + 12, dtype=np.float32)
        assert len(decode_keypoints(raw, np.eye(3, dtype=np.float32))) == NUM_KEYPOINTS


class TestProjectKeypoints:

    def test_display_position_and_depth(self):
        raw = np.zeros((NUM_KEYPOINTS, 5), dtype=np.float32)
        raw[:, 0] = 320.0
        raw[:, 1] = 240.0
        raw[:, 2] = 48.0
        raw[:, 3:] = 0.9
        keypoints = project_keypoints(raw, np.eye(3, dtype=np.float32), 640, 480)

        kp = keypoints[0]
        assert kp.position == pytest.approx((0.0, 0.0, 0.1))
        assert kp.visible

    def test_names_follow_landmark_order(self):
        keypoints = project_keypoints(make_landmarks(), np.eye(3, dtype=np.float32), 640, 480)
        assert [kp.name for kp in keypoints] == LANDMARK_NAMES
        assert keypoints[0].name == "nose"
        assert keypoints[32].name == "right_foot_index"

    def test_fewer_keypoints(self):
        raw = make_landmarks(num_keypoints=5)
        keypoints = project_keypoints(raw, np.eye(3, dtype=np.float32), 100, 100, num_keypoints=5)
        assert len(keypoints) == 5

    def test_mixed_visibility(self):
        raw = np.zeros((NUM_KEYPOINTS, 5), dtype=np.float32)
        raw[0, 3:] = (0.6, 0.6)
        raw[1, 3:] = (0.4, 0.9)
        keypoints = project_keypoints(raw, np.eye(3, dtype=np.float32), 640, 480)
        assert keypoints[0].visible
        assert not keypoints[1].visible
