"""Tests for skeleton resolution."""

import logging

import pytest

from clip2vrma.core.errors import MissingRootBone, VrmaExportError
from clip2vrma.core.skeleton_adapter import (
    HumanoidSkeletonProvider,
    find_effective_parent,
    resolve_skeleton,
)
from clip2vrma.data.humanoid import HumanBone

from tests.conftest import build_avatar

B = HumanBone


def resolve(avatar):
    return resolve_skeleton(HumanoidSkeletonProvider().provide(avatar))


class TestEffectiveParent:

    def test_direct_parent_present(self):
        present = {B.HIPS: 0, B.SPINE: 0}
        assert find_effective_parent(B.SPINE, present) is B.HIPS

    def test_skips_missing_ancestors(self):
        present = {B.HIPS: 0, B.SPINE: 0, B.CHEST: 0, B.NECK: 0}
        assert find_effective_parent(B.NECK, present) is B.CHEST
        assert find_effective_parent(B.LEFT_UPPER_ARM, present) is B.CHEST

    def test_falls_back_to_hips(self):
        present = {B.HIPS: 0, B.LEFT_HAND: 0}
        assert find_effective_parent(B.LEFT_HAND, present) is B.HIPS

    def test_root_bone_has_no_parent(self):
        assert find_effective_parent(B.HIPS, {B.HIPS: 0}) is None

    def test_no_present_ancestor(self):
        assert find_effective_parent(B.HEAD, {B.HEAD: 0}) is None


def test_resolve_flattens_hierarchy():
    skeleton = resolve(build_avatar())

    assert len(skeleton) == 7
    assert skeleton[B.HIPS].effective_parent is None
    assert skeleton[B.NECK].effective_parent is B.CHEST
    assert skeleton[B.LEFT_UPPER_ARM].effective_parent is B.CHEST
    assert skeleton.parent_transform(B.HIPS).name == "Armature"
    assert skeleton.parent_transform(B.NECK).name == "Chest"
    assert B.UPPER_CHEST not in skeleton


def test_bones_in_canonical_order():
    skeleton = resolve(build_avatar())
    order = [r.bone for r in skeleton.bones_in_order()]
    assert order == [b for b in HumanBone if b in skeleton]
    assert order[0] is B.HIPS


def test_missing_hips_raises():
    with pytest.raises(MissingRootBone) as excinfo:
        resolve(build_avatar(with_hips=False))
    assert isinstance(excinfo.value, VrmaExportError)
    assert excinfo.value.avatar_name == "TestAvatar"


def test_provider_warns_on_broken_mapping(caplog):
    avatar = build_avatar()
    avatar.humanoid[B.JAW] = "Hips/Spine/Chest/Neck/Head/Jaw"

    with caplog.at_level(logging.WARNING, logger="clip2vrma"):
        provided = HumanoidSkeletonProvider().provide(avatar)

    assert B.JAW not in provided.bones
    assert "jaw" in caplog.text


def test_provider_custom_root():
    avatar = build_avatar()
    hips = avatar.find("Hips")
    provided = HumanoidSkeletonProvider().provide(avatar, hips)
    assert provided.root_transform is hips


def test_capture_includes_root():
    skeleton = resolve(build_avatar())
    snapshot = skeleton.capture()
    assert None in snapshot
    assert len(snapshot) == len(skeleton) + 1
