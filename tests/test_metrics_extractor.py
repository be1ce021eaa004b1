"""
Metrics extractor tests.

Uses synthetic normalized landmarks with known geometry to check each metric
(EAR, MAR, eyebrow offset, yaw, pitch, roll), the smile/surprise flags, the
no-face and degenerate-geometry policies, and scale invariance.
"""

import sys
import os
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import numpy as np


class TestEyeAndMouthRatios(unittest.TestCase):
    """EAR/MAR formulas on landmarks built for exact ratios."""

    def setUp(self):
        from utils.metrics_extractor import MetricsExtractor
        self.extractor = MetricsExtractor()

    def test_neutral_face_metrics(self):
        """Default synthetic face yields EAR 0.30, MAR 0.05, brow -0.04 and level head."""
        from tests.fixtures.synthetic_landmarks import make_face_landmarks
        m = self.extractor.extract(make_face_landmarks())
        self.assertTrue(m.is_face_detected)
        self.assertAlmostEqual(m.left_eye_openness, 0.30, places=6)
        self.assertAlmostEqual(m.right_eye_openness, 0.30, places=6)
        self.assertAlmostEqual(m.avg_eye_openness, 0.30, places=6)
        self.assertAlmostEqual(m.mouth_openness, 0.05, places=6)
        self.assertAlmostEqual(m.eyebrow_vertical_pos, -0.04, places=6)
        self.assertAlmostEqual(m.head_yaw, 0.0, places=6)
        self.assertAlmostEqual(m.head_pitch, 0.0, places=6)
        self.assertAlmostEqual(m.head_roll, 0.0, places=6)
        self.assertFalse(m.is_smiling)
        self.assertFalse(m.is_surprised)

    def test_eyes_measured_independently(self):
        """Left and right EAR come from their own point sets."""
        from tests.fixtures.synthetic_landmarks import make_face_landmarks
        m = self.extractor.extract(make_face_landmarks(left_ear=0.30, right_ear=0.60))
        self.assertAlmostEqual(m.left_eye_openness, 0.30, places=6)
        self.assertAlmostEqual(m.right_eye_openness, 0.60, places=6)
        self.assertAlmostEqual(m.avg_eye_openness, 0.45, places=6)

    def test_mouth_aspect_ratio(self):
        """MAR equals vertical opening over corner-to-corner width."""
        from tests.fixtures.synthetic_landmarks import make_face_landmarks
        m = self.extractor.extract(make_face_landmarks(mar=0.5))
        self.assertAlmostEqual(m.mouth_openness, 0.5, places=6)

    def test_eyebrow_position_is_mean_of_both_sides(self):
        """eyebrow_vertical_pos averages left and right brow-minus-eye-top."""
        from tests.fixtures.synthetic_landmarks import (
            make_face_landmarks, LEFT_BROW, RIGHT_BROW,
        )
        lm = make_face_landmarks(brow=-0.04)
        lm[LEFT_BROW, 1] -= 0.02  # left brow -0.06, right -0.04
        m = self.extractor.extract(lm)
        self.assertAlmostEqual(m.eyebrow_vertical_pos, -0.05, places=6)

    def test_z_column_is_ignored(self):
        """A third (depth) column does not change the metrics."""
        from tests.fixtures.synthetic_landmarks import make_face_landmarks
        lm2 = make_face_landmarks(mar=0.3)
        lm3 = np.hstack([lm2, np.random.RandomState(7).rand(lm2.shape[0], 1)])
        self.assertEqual(self.extractor.extract(lm2), self.extractor.extract(lm3))

    def test_accepts_nested_lists(self):
        """Plain Python lists of [x, y] work like an ndarray."""
        from tests.fixtures.synthetic_landmarks import make_face_landmarks
        lm = make_face_landmarks()
        self.assertEqual(self.extractor.extract(lm.tolist()), self.extractor.extract(lm))


class TestHeadPose(unittest.TestCase):
    """Yaw, pitch and roll from the nose/eye/forehead/chin reference points."""

    def setUp(self):
        from utils.metrics_extractor import MetricsExtractor
        self.extractor = MetricsExtractor()

    def test_yaw_positive_when_nose_nearer_left_eye_inner(self):
        """Shifting the nose toward the left-eye-inner point gives positive yaw."""
        from tests.fixtures.synthetic_landmarks import make_turned_head_landmarks
        m = self.extractor.extract(make_turned_head_landmarks(nose_dx=-0.08))
        self.assertGreater(m.head_yaw, 12.0)

    def test_yaw_negative_when_nose_nearer_right_eye_inner(self):
        """Opposite shift gives negative yaw of the same magnitude."""
        from tests.fixtures.synthetic_landmarks import make_turned_head_landmarks
        left = self.extractor.extract(make_turned_head_landmarks(nose_dx=-0.08))
        right = self.extractor.extract(make_turned_head_landmarks(nose_dx=0.08))
        self.assertLess(right.head_yaw, 0.0)
        self.assertAlmostEqual(left.head_yaw, -right.head_yaw, places=6)

    def test_pitch_from_nose_height(self):
        """Nose lowered by 0.1: dTop=0.45, dBottom=0.25 -> pitch = -0.2/0.7*100."""
        from tests.fixtures.synthetic_landmarks import make_face_landmarks
        m = self.extractor.extract(make_face_landmarks(nose_dy=0.1))
        self.assertAlmostEqual(m.head_pitch, -200.0 / 7.0, places=4)

    def test_roll_is_inter_eye_angle_in_degrees(self):
        """Rotating the face by 10 degrees gives a 10 degree roll."""
        from tests.fixtures.synthetic_landmarks import make_face_landmarks
        m = self.extractor.extract(make_face_landmarks(roll_deg=10.0))
        self.assertAlmostEqual(m.head_roll, 10.0, places=6)


class TestExpressionFlags(unittest.TestCase):
    """is_smiling / is_surprised heuristics."""

    def setUp(self):
        from utils.metrics_extractor import MetricsExtractor
        self.extractor = MetricsExtractor()

    def test_smile_needs_open_mouth_and_raised_corner(self):
        """Corner above the lower lip with MAR > 0.1 is a smile; corner below is not."""
        from tests.fixtures.synthetic_landmarks import make_face_landmarks
        self.assertTrue(self.extractor.extract(make_face_landmarks(mar=0.2, smiling=True)).is_smiling)
        self.assertFalse(self.extractor.extract(make_face_landmarks(mar=0.2, smiling=False)).is_smiling)
        # Corner raised but mouth almost shut
        self.assertFalse(self.extractor.extract(make_face_landmarks(mar=0.05, smiling=True)).is_smiling)

    def test_surprised_flag_uses_left_eye_and_mar(self):
        """is_surprised needs MAR > 0.4 and left EAR > 0.35, regardless of the right eye."""
        from tests.fixtures.synthetic_landmarks import make_face_landmarks
        self.assertTrue(self.extractor.extract(
            make_face_landmarks(left_ear=0.4, right_ear=0.1, mar=0.5)).is_surprised)
        self.assertFalse(self.extractor.extract(
            make_face_landmarks(left_ear=0.3, right_ear=0.5, mar=0.5)).is_surprised)
        self.assertFalse(self.extractor.extract(
            make_face_landmarks(left_ear=0.4, right_ear=0.4, mar=0.3)).is_surprised)


class TestNoFaceAndErrors(unittest.TestCase):
    """No-face inputs, insufficient landmark sets and degenerate geometry."""

    def setUp(self):
        from utils.metrics_extractor import MetricsExtractor
        self.extractor = MetricsExtractor()

    def test_none_returns_no_face(self):
        """None means no face: is_face_detected False, all fields default."""
        from utils.face_metrics import FaceMetrics
        m = self.extractor.extract(None)
        self.assertFalse(m.is_face_detected)
        self.assertEqual(m, FaceMetrics())

    def test_empty_face_list_returns_no_face(self):
        """extract_first([]) and from_detections([]) return the no-face metrics."""
        self.assertFalse(self.extractor.extract_first([]).is_face_detected)
        self.assertFalse(self.extractor.extract_first(None).is_face_detected)
        self.assertFalse(self.extractor.from_detections([]).is_face_detected)
        self.assertFalse(self.extractor.extract(np.empty((0, 2))).is_face_detected)

    def test_only_first_face_is_used(self):
        """With two faces, metrics come from the first one."""
        from tests.fixtures.synthetic_landmarks import make_face_landmarks
        first = make_face_landmarks(mar=0.5)
        second = make_face_landmarks(mar=0.1)
        m = self.extractor.extract_first([first, second])
        self.assertAlmostEqual(m.mouth_openness, 0.5, places=6)

    def test_from_detections_reads_landmarks(self):
        """from_detections uses FaceDetectionResult.landmarks of the first result."""
        from utils.face_detection_interface import FaceDetectionResult
        from tests.fixtures.synthetic_landmarks import make_face_landmarks
        results = [FaceDetectionResult(landmarks=make_face_landmarks(left_ear=0.2, right_ear=0.2))]
        m = self.extractor.from_detections(results)
        self.assertAlmostEqual(m.avg_eye_openness, 0.2, places=6)

    def test_insufficient_landmarks_raises_descriptive_error(self):
        """A landmark set shorter than the highest required index raises InsufficientLandmarksError."""
        from utils.face_metrics import InsufficientLandmarksError
        with self.assertRaises(InsufficientLandmarksError) as ctx:
            self.extractor.extract(np.zeros((100, 2)))
        self.assertIn("100", str(ctx.exception))
        self.assertEqual(ctx.exception.supplied, 100)
        self.assertEqual(ctx.exception.required, 388)
        self.assertIsInstance(ctx.exception, ValueError)

    def test_bad_shape_raises_value_error(self):
        """A 1-D array is not a landmark set."""
        with self.assertRaises(ValueError):
            self.extractor.extract(np.zeros(468))

    def test_non_finite_coordinates_raise_value_error(self):
        """NaN or infinite x/y values are rejected instead of propagating into the metrics."""
        from utils.face_metrics import InsufficientLandmarksError
        from tests.fixtures.synthetic_landmarks import make_face_landmarks
        for bad in (np.nan, np.inf, -np.inf):
            lm = make_face_landmarks()
            lm[200, 0] = bad  # Not a landmark the metrics read
            with self.assertRaises(ValueError) as ctx:
                self.extractor.extract(lm)
            self.assertNotIsInstance(ctx.exception, InsufficientLandmarksError)

    def test_non_finite_depth_is_ignored(self):
        """The z column is not used, so NaN depth values are accepted."""
        from tests.fixtures.synthetic_landmarks import make_face_landmarks
        lm = make_face_landmarks()
        lm3 = np.hstack([lm, np.full((lm.shape[0], 1), np.nan)])
        self.assertEqual(self.extractor.extract(lm3), self.extractor.extract(lm))

    def test_zero_width_mouth_gives_zero_mar(self):
        """Mouth corners on the same point: no exception, mouth_openness == 0."""
        from tests.fixtures.synthetic_landmarks import (
            make_face_landmarks, MOUTH_LEFT, MOUTH_RIGHT,
        )
        lm = make_face_landmarks(mar=0.5)
        lm[MOUTH_RIGHT] = lm[MOUTH_LEFT]
        m = self.extractor.extract(lm)
        self.assertTrue(m.is_face_detected)
        self.assertEqual(m.mouth_openness, 0.0)
        self.assertFalse(m.is_smiling)
        self.assertFalse(m.is_surprised)

    def test_collapsed_landmarks_give_zero_ratios(self):
        """Every point identical: all ratio metrics fall back to 0."""
        m = self.extractor.extract(np.full((468, 2), 0.5))
        self.assertTrue(m.is_face_detected)
        for value in (m.left_eye_openness, m.right_eye_openness, m.mouth_openness,
                      m.head_yaw, m.head_pitch, m.head_roll):
            self.assertEqual(value, 0.0)

    def test_custom_epsilon(self):
        """Distances below a larger epsilon are treated as degenerate."""
        from utils.metrics_extractor import MetricsExtractor
        from tests.fixtures.synthetic_landmarks import make_face_landmarks
        coarse = MetricsExtractor(epsilon=0.5)
        m = coarse.extract(make_face_landmarks(mar=0.5))  # mouth width 0.2 < 0.5
        self.assertEqual(m.mouth_openness, 0.0)


class TestScaleInvariance(unittest.TestCase):
    """Ratio metrics do not depend on the coordinate scale."""

    def test_uniform_scaling_keeps_ratio_metrics(self):
        """Remapping [0,1] coordinates to [0,2] (or to pixels) leaves EAR/MAR/pose unchanged."""
        from utils.metrics_extractor import MetricsExtractor
        from tests.fixtures.synthetic_landmarks import make_face_landmarks
        extractor = MetricsExtractor()
        lm = make_face_landmarks(left_ear=0.25, right_ear=0.33, mar=0.42, nose_dx=0.03,
                                 nose_dy=-0.02, roll_deg=7.0)
        base = extractor.extract(lm)
        for factor in (2.0, 640.0):
            scaled = extractor.extract(lm * factor)
            self.assertAlmostEqual(scaled.left_eye_openness, base.left_eye_openness, places=9)
            self.assertAlmostEqual(scaled.right_eye_openness, base.right_eye_openness, places=9)
            self.assertAlmostEqual(scaled.mouth_openness, base.mouth_openness, places=9)
            self.assertAlmostEqual(scaled.head_yaw, base.head_yaw, places=6)
            self.assertAlmostEqual(scaled.head_pitch, base.head_pitch, places=6)
            self.assertAlmostEqual(scaled.head_roll, base.head_roll, places=6)
            self.assertEqual(scaled.is_smiling, base.is_smiling)
            self.assertEqual(scaled.is_surprised, base.is_surprised)


if __name__ == "__main__":
    unittest.main()
