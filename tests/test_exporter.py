"""End-to-end tests for the VRM animation exporter."""

import numpy as np
import pytest

from clip2vrma.config.settings import ExporterConfig
from clip2vrma.core.errors import MissingRootBone
from clip2vrma.core.exporter import VrmAnimationExporter, export_to_file, write_artifact
from clip2vrma.data.exporters.glb_container import GlbContainer, read_accessor, read_glb
from clip2vrma.data.expressions import ExpressionKey, ExpressionPreset
from clip2vrma.data.humanoid import HumanBone
from clip2vrma.data.scene import Avatar

from tests.conftest import assert_same_rotation, build_avatar, build_clip


def export(avatar, clip, expression_map=None, **kwargs):
    data = VrmAnimationExporter(**kwargs).export(avatar, clip, expression_map)
    return read_glb(data)


def samplers_by_target(document):
    animation = document["animations"][0]
    return {
        (c["target"]["node"], c["target"]["path"]): animation["samplers"][c["sampler"]]
        for c in animation["channels"]
    }


def test_document_structure(avatar, clip):
    document = export(avatar, clip)["json"]

    assert document["asset"]["version"] == "2.0"
    assert document["extensionsUsed"] == ["VRMC_vrm_animation"]
    names = [n["name"] for n in document["nodes"]]
    assert names == [
        "Armature", "Hips", "Spine", "Chest", "Neck", "Head", "LeftUpperLeg", "LeftUpperArm",
        "__expression_Smile", "__expression_blink",
    ]
    assert document["scenes"][0]["nodes"] == [0, 8, 9]

    animation = document["animations"][0]
    assert animation["name"] == "vrm_animation"
    assert len(animation["channels"]) == 1 + 7 + 2
    assert all(s["interpolation"] == "LINEAR" for s in animation["samplers"])


def test_bone_nodes_follow_effective_parents(avatar, clip):
    nodes = export(avatar, clip)["json"]["nodes"]

    assert nodes[0]["children"] == [1]
    assert nodes[1]["children"] == [2, 6]
    # Missing upperChest: neck and arm hang off the chest
    assert nodes[3]["children"] == [4, 7]
    assert np.allclose(nodes[1]["translation"], [0.0, 1.0, 0.0])
    assert np.allclose(nodes[7]["translation"], [-0.2, 0.15, 0.0])
    assert_same_rotation(nodes[4]["rotation"], [0.0, 0.0, 0.0, 1.0])


def test_extension_block(avatar, clip):
    extension = export(avatar, clip)["json"]["extensions"]["VRMC_vrm_animation"]

    assert extension["specVersion"] == "1.0"
    human_bones = extension["humanoid"]["humanBones"]
    assert human_bones["hips"] == {"node": 1}
    assert human_bones["leftUpperArm"] == {"node": 7}
    assert "upperChest" not in human_bones
    assert extension["expressions"] == {
        "preset": {"blink": {"node": 9}},
        "custom": {"Smile": {"node": 8}},
    }


def test_sequences(avatar, clip):
    glb = export(avatar, clip)
    document = glb["json"]
    samplers = samplers_by_target(document)

    sampler = samplers[(1, "translation")]
    times = read_accessor(glb, sampler["input"])
    assert len(times) == 31
    assert times[-1] == pytest.approx(1.0)
    positions = read_accessor(glb, sampler["output"])
    assert np.allclose(positions[-1], [-0.5, 1.0, 0.0], atol=1e-6)

    # Spine turns with the hips, so its local rotation stays identity
    sampler = samplers[(2, "rotation")]
    assert sampler["input"] == samplers[(1, "rotation")]["input"]
    for q in read_accessor(glb, sampler["output"]):
        assert_same_rotation(q, [0.0, 0.0, 0.0, 1.0])

    # Blink ramps 0 -> 1 -> 0, carried as (w, 0, 0) on a translation channel
    sampler = samplers[(9, "translation")]
    assert (9, "rotation") not in samplers
    weights = read_accessor(glb, sampler["output"])
    assert weights.shape == (31, 3)
    assert weights[15, 0] == pytest.approx(1.0)
    assert weights[0, 0] == pytest.approx(0.0)
    assert not weights[:, 1:].any()
    assert np.all((weights[:, 0] >= 0.0) & (weights[:, 0] <= 1.0))


def test_accessor_counts_match_frames(avatar):
    glb = export(avatar, build_clip(duration=0.5))
    for accessor in glb["json"]["accessors"]:
        assert accessor["count"] == 16


def test_zero_duration_exports_one_frame(avatar):
    glb = export(avatar, build_clip(duration=0.0))
    assert all(a["count"] == 1 for a in glb["json"]["accessors"])


def test_time_axis_ends_at_duration(avatar):
    result = VrmAnimationExporter().build(avatar, build_clip(duration=4.1))
    assert result.tracks.num_frames == 124
    assert result.tracks.times[-1] == pytest.approx(4.1)


def test_explicit_map_excludes_unmapped(avatar, clip):
    mapping = {"Blink": ExpressionKey.from_preset(ExpressionPreset.BLINK)}
    document = export(avatar, clip, mapping)["json"]

    expressions = document["extensions"]["VRMC_vrm_animation"]["expressions"]
    assert list(expressions["preset"]) == ["blink"]
    assert "custom" not in expressions
    assert "__expression_Smile" not in [n["name"] for n in document["nodes"]]


def test_preset_and_custom_resolution_without_map(avatar):
    document = export(avatar, build_clip(channels=("happy", "customFoo")))["json"]
    expressions = document["extensions"]["VRMC_vrm_animation"]["expressions"]
    assert "happy" in expressions["preset"]
    assert "customFoo" in expressions["custom"]


def test_expression_node_order(avatar):
    document = export(avatar, build_clip(channels=("Zeta", "Alpha")))["json"]
    names = [n["name"] for n in document["nodes"]]
    assert names[-2:] == ["__expression_Alpha", "__expression_Zeta"]


def test_missing_hips_writes_nothing(monkeypatch):
    appended = []
    monkeypatch.setattr(GlbContainer, "append_sequence", lambda self, values: appended.append(values))

    with pytest.raises(MissingRootBone):
        VrmAnimationExporter().build(build_avatar(with_hips=False), build_clip())
    assert appended == []


def test_output_is_deterministic(avatar, clip):
    exporter = VrmAnimationExporter()
    assert exporter.export(avatar, clip) == exporter.export(avatar, clip)


def test_output_independent_of_input_order():
    channels = ("Blink", "Smile", "Grin", "Smirk")
    mapping = {
        "Blink": ExpressionKey.parse("blink"),
        "Smile": ExpressionKey.parse("happy"),
        "Grin": ExpressionKey.parse("happy"),
        "Smirk": ExpressionKey.parse("custom:Smirk"),
    }
    forward_clip = build_clip(channels=channels)
    backward_clip = build_clip(channels=channels)
    backward_clip.curve_bindings.reverse()
    backward_map = dict(reversed(list(mapping.items())))

    exporter = VrmAnimationExporter()
    forward = exporter.export(build_avatar(), forward_clip, mapping)
    backward = exporter.export(build_avatar(), backward_clip, backward_map)

    assert forward == backward


def test_source_avatar_untouched(avatar, clip):
    hips = avatar.find("Hips")
    position = hips.local_position.copy()
    rotation = hips.local_rotation.copy()

    VrmAnimationExporter().export(avatar, clip)

    assert not avatar.disposed
    assert np.array_equal(hips.local_position, position)
    assert np.array_equal(hips.local_rotation, rotation)


def test_working_copy_disposed_on_failure(monkeypatch):
    copies = []
    original = Avatar.duplicate

    def tracking_duplicate(self):
        copy = original(self)
        copies.append(copy)
        return copy

    monkeypatch.setattr(Avatar, "duplicate", tracking_duplicate)

    with pytest.raises(MissingRootBone):
        VrmAnimationExporter().build(build_avatar(with_hips=False), build_clip())
    assert len(copies) == 1
    assert copies[0].disposed


def test_custom_avatar_root(avatar, clip):
    result = VrmAnimationExporter().build(avatar, clip, avatar_root="Hips")
    # Hips is its own root: zero offset
    assert np.allclose(result.tracks.root_positions[0], [0.0, 0.0, 0.0])
    assert result.document["nodes"][0]["name"] == "Hips"

    with pytest.raises(ValueError):
        VrmAnimationExporter().build(avatar, clip, avatar_root="Nope")


def test_config_applied(avatar, clip):
    config = ExporterConfig(animation_name="take_1", expression_node_prefix="expr_")
    document = VrmAnimationExporter(config).build(avatar, clip).document
    assert document["animations"][0]["name"] == "take_1"
    assert document["nodes"][-1]["name"] == "expr_blink"


def test_result_bookkeeping(avatar, clip):
    result = VrmAnimationExporter().build(avatar, clip)
    assert result.bone_nodes[HumanBone.HIPS] == 1
    assert result.expression_nodes[ExpressionKey.parse("blink")] == 9
    assert result.tracks.num_frames == 31


def test_export_to_file(tmp_path, avatar, clip):
    path = tmp_path / "out" / "wave.vrma"
    result = export_to_file(path, avatar, clip)
    assert path.read_bytes() == result.to_glb()


def test_export_to_file_with_avatar_root(tmp_path, avatar, clip):
    path = tmp_path / "wave.vrma"
    result = export_to_file(path, avatar, clip, avatar_root="Hips")
    assert result.document["nodes"][0]["name"] == "Hips"
    assert read_glb(path.read_bytes())["json"]["nodes"][0]["name"] == "Hips"


def test_export_to_file_failure_leaves_nothing(tmp_path):
    path = tmp_path / "wave.vrma"
    with pytest.raises(MissingRootBone):
        export_to_file(path, build_avatar(with_hips=False), build_clip())
    assert list(tmp_path.iterdir()) == []


def test_write_artifact_is_atomic(tmp_path, monkeypatch):
    path = tmp_path / "wave.vrma"
    path.write_bytes(b"old")

    def failing_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("clip2vrma.core.exporter.os.replace", failing_replace)
    with pytest.raises(OSError):
        write_artifact(path, b"new")

    assert path.read_bytes() == b"old"
    assert [p.name for p in tmp_path.iterdir()] == ["wave.vrma"]
