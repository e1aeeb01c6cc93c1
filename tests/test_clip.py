"""Tests for curve evaluation and clip sampling."""

import numpy as np
import pytest

from clip2vrma.data.clip import AnimationCurve, CurveBinding, Keyframe, KeyframeClip, TransformCurves

from tests.conftest import build_avatar


class TestAnimationCurve:

    def test_linear_interpolation(self):
        curve = AnimationCurve.from_points([(0.0, 0.0), (2.0, 10.0)])
        assert curve.evaluate(0.5) == pytest.approx(2.5)

    def test_clamps_outside_keys(self):
        curve = AnimationCurve.from_points([(1.0, 3.0), (2.0, 5.0)])
        assert curve.evaluate(0.0) == 3.0
        assert curve.evaluate(10.0) == 5.0

    def test_keys_sorted_on_construction(self):
        curve = AnimationCurve([Keyframe(1.0, 1.0), Keyframe(0.0, 0.0)])
        assert [k.time for k in curve.keys] == [0.0, 1.0]
        assert curve.duration == 1.0

    def test_hermite_with_flat_tangents(self):
        curve = AnimationCurve.from_points([(0.0, 0.0, 0.0, 0.0), (1.0, 1.0, 0.0, 0.0)])
        # Ease in/out: slower than linear near the start
        assert curve.evaluate(0.25) == pytest.approx(0.15625)
        assert curve.evaluate(0.5) == pytest.approx(0.5)

    def test_step_tangent_holds_value(self):
        curve = AnimationCurve.from_points([(0.0, 2.0, 0.0, float("inf")), (1.0, 8.0, 0.0, 0.0)])
        assert curve.evaluate(0.99) == 2.0
        assert curve.evaluate(1.0) == 8.0

    def test_empty_curve(self):
        curve = AnimationCurve()
        assert curve.num_keys == 0
        assert curve.evaluate(1.0) == 0.0

    def test_constant(self):
        assert AnimationCurve.constant(4.0).evaluate(123.0) == 4.0


def test_rotation_curves_are_normalized():
    const = AnimationCurve.constant
    curves = TransformCurves(rotation=(const(0.0), const(0.0), const(0.0), const(2.0)))
    assert np.allclose(curves.evaluate_rotation(0.0), [0.0, 0.0, 0.0, 1.0])
    assert curves.evaluate_position(0.0) is None


def test_blend_shape_name():
    curve = AnimationCurve.constant(0.0)
    assert CurveBinding("Face", "blendShape.Blink", curve).blend_shape_name == "Blink"
    assert CurveBinding("Face", "m_IsActive", curve).blend_shape_name is None


def test_sample_animation_poses_transforms():
    avatar = build_avatar()
    clip = KeyframeClip(
        name="lift",
        duration=1.0,
        transform_tracks={
            "Hips": TransformCurves(position=(
                AnimationCurve.constant(0.0),
                AnimationCurve.from_points([(0.0, 1.0), (1.0, 2.0)]),
                AnimationCurve.constant(0.0),
            )),
            "Missing/Path": TransformCurves(position=(
                AnimationCurve.constant(1.0),
                AnimationCurve.constant(1.0),
                AnimationCurve.constant(1.0),
            )),
        },
    )
    clip.sample_animation(avatar, 0.5)
    assert np.allclose(avatar.find("Hips").local_position, [0.0, 1.5, 0.0])
