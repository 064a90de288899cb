"""
End-to-end tests for the scene compiler: markup, attribute serialisation,
pruning rules, instancing and error reporting.

Runs standalone (python tests/test_compiler.py) or under pytest.
"""

import os
import sys
import math
import logging
import traceback

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from tres_builder import (AnimationClip, CompileOptions, Geometry, GraphIndex, InstancingMode,
                          Material, MalformedGraphError, SceneNode, TraversalError)
from tres_builder.context import CompileContext
from tres_builder.emitter import MarkupEmitter
from tres_builder.markup import walk
from tres_builder.scene_graph import (BONE, OBJECT3D, PERSPECTIVE_CAMERA, POINT_LIGHT,
                                      SKINNED_MESH, SPOT_LIGHT)

from scene_factories import (geometry, material, mesh, group, scene,
                             compile_scene, scene_lines)


_PASSED = 0
_FAILED = 0
_ERRORS = []


def _test(name, fn):
    global _PASSED, _FAILED
    try:
        fn()
        _PASSED += 1
        print("  PASS  {}".format(name))
    except Exception as e:
        _FAILED += 1
        _ERRORS.append((name, e))
        print("  FAIL  {} -- {}".format(name, e))
        traceback.print_exc()


def _light(name, **kwargs):
    return SceneNode(POINT_LIGHT, name=name, **kwargs)


# ---------------------------------------------------------------------------
# Basic emission
# ---------------------------------------------------------------------------

def test_group_with_single_mesh():
    """root -> A (default transform) -> M collapses to M alone."""
    m = mesh('M', geo=geometry('G1'), mat=material('Red'))
    out = compile_scene(scene(group('A', [m])))
    assert scene_lines(out) == ['<TresMesh :geometry="nodes.M.geometry" :material="materials.Red" />']


def test_default_transform_elided():
    out = compile_scene(scene(_light('Lamp')))
    assert scene_lines(out) == ['<TresPointLight />']
    for attr in ('position', 'rotation', 'scale'):
        assert attr not in out.scene


def test_transform_attributes():
    lamp = _light('Lamp', position=[1.0, 2.5, -3.0], rotation=[0.3, 0.0, 0.0],
                  scale=[2.0, 2.0, 2.0])
    other = _light('Other', scale=[1.0, 2.0, 3.0])
    out = compile_scene(scene(lamp, other), keep_groups=True)
    assert ':position="[1, 2.5, -3]" :rotation="[0.3, 0, 0]" :scale="2"' in out.scene
    assert ':scale="[1, 2, 3]"' in out.scene


def test_angle_canonicalisation():
    tilted = mesh('Tilted', rotation=[math.pi / 2, 0.0, 0.0])
    out = compile_scene(scene(tilted))
    assert ':rotation="[Math.PI / 2, 0, 0]"' in out.scene
    assert '1.5707963267948966' not in out.scene


def test_precision():
    lamp = _light('Lamp', position=[0.123456, 0.0, 0.0])
    assert ':position="[0.12, 0, 0]"' in compile_scene(scene(lamp)).scene
    lamp = _light('Lamp', position=[0.123456, 0.0, 0.0])
    assert ':position="[0.1235, 0, 0]"' in compile_scene(scene(lamp), precision=4).scene


def test_identifier_sanitisation():
    part = mesh('My Part', mat=material(''))
    out = compile_scene(scene(part), keep_names=True)
    assert scene_lines(out) == [
        '<TresMesh name="My Part" :geometry="nodes[\'My Part\'].geometry" '
        ':material="nodes[\'My Part\'].material" />'
    ]
    assert 'nodes.My Part' not in out.scene


def test_name_attribute_policy():
    plain = compile_scene(scene(mesh('Body')))
    assert 'name=' not in plain.scene

    morph = mesh('Face', morph_target_dictionary={'smile': 0},
                 morph_target_influences=[0.0])
    out = compile_scene(scene(morph))
    assert scene_lines(out) == [
        '<TresMesh name="Face" :geometry="nodes.Face.geometry" :material="materials.Default" '
        ':morph-target-dictionary="nodes.Face.morphTargetDictionary" '
        ':morph-target-influences="nodes.Face.morphTargetInfluences" />'
    ]

    unnamed = compile_scene(scene(mesh('')), keep_names=True)
    assert 'name=' not in unnamed.scene


def test_sibling_order_preserved():
    lights = [_light(name, position=[float(i + 1), 0.0, 0.0])
              for i, name in enumerate(['A', 'B', 'C'])]
    out = compile_scene(scene(*lights), keep_names=True)
    assert [line.split(' ')[1] for line in scene_lines(out)] == \
        ['name="A"', 'name="B"', 'name="C"']


def test_keep_groups_keeps_hierarchy():
    m = mesh('M')
    out = compile_scene(scene(group('Wrapper', [m], position=[0.0, 1.0, 0.0])),
                        keep_groups=True)
    assert scene_lines(out) == [
        '<TresGroup>',
        '<TresGroup :position="[0, 1, 0]">',
        '<TresMesh :geometry="nodes.M.geometry" :material="materials.Default" />',
        '</TresGroup>',
        '</TresGroup>',
    ]


# ---------------------------------------------------------------------------
# Pruning rules
# ---------------------------------------------------------------------------

def test_rotation_cancellation():
    inner = group('Inner', [_light('L1', position=[1.0, 0.0, 0.0]), _light('L2')],
                  rotation=[math.pi / 2, 0.0, 0.0])
    outer = group('Outer', [inner], rotation=[-math.pi / 2, 0.0, 0.0])
    out = compile_scene(scene(outer))
    assert scene_lines(out) == ['<TresPointLight :position="[1, 0, 0]" />', '<TresPointLight />']
    assert 'TresGroup' not in out.scene


def test_rotation_cancellation_with_child_props():
    inner = group('Inner', [_light('L1', position=[1.0, 0.0, 0.0]), _light('L2')],
                  rotation=[math.pi / 2, 0.0, 0.0], scale=[2.0, 2.0, 2.0])
    outer = group('Outer', [inner], rotation=[-math.pi / 2, 0.0, 0.0])
    out = compile_scene(scene(outer))
    assert scene_lines(out) == [
        '<TresGroup :scale="2">',
        '<TresPointLight :position="[1, 0, 0]" />',
        '<TresPointLight />',
        '</TresGroup>',
    ]
    assert inner.rotation == [0.0, 0.0, 0.0]


def test_transform_passthrough():
    lamp = _light('Lamp')
    out = compile_scene(scene(group('Holder', [lamp], position=[0.0, 5.0, 0.0])))
    assert scene_lines(out) == ['<TresPointLight :position="[0, 5, 0]" />']


def test_transform_passthrough_blocked_by_child_transform():
    lamp = _light('Lamp', rotation=[0.5, 0.0, 0.0])
    out = compile_scene(scene(group('Holder', [lamp], position=[0.0, 5.0, 0.0])))
    assert scene_lines(out) == [
        '<TresGroup :position="[0, 5, 0]">',
        '<TresPointLight :rotation="[0.5, 0, 0]" />',
        '</TresGroup>',
    ]


def test_vacuous_subtree_removed():
    empty = group('Outer', [group('Inner', position=[1.0, 0.0, 0.0])],
                  position=[0.0, 1.0, 0.0])
    out = compile_scene(scene(empty, _light('Lamp')))
    assert scene_lines(out) == ['<TresPointLight />']


def test_vacuous_root_emits_nothing():
    root = scene(group('Empty', position=[1.0, 0.0, 0.0]), position=[0.0, 2.0, 0.0])
    out = compile_scene(root)
    assert scene_lines(out) == []
    assert out.markup == []


def test_animated_models_keep_groups():
    body = mesh('Body')
    rig = group('Rig', [_light('Lamp')], position=[0.0, 1.0, 0.0])
    out = compile_scene(scene(rig, body), animations=[AnimationClip('Idle')])
    assert '<TresGroup name="Rig" :position="[0, 1, 0]">' in out.scene
    assert '<TresPointLight name="Lamp" />' in out.scene


def test_pruning_is_idempotent():
    inner = group('Inner', [_light('L1'), _light('L2', position=[0.0, 1.0, 0.0])],
                  rotation=[math.pi / 2, 0.0, 0.0], scale=[3.0, 3.0, 3.0])
    root = scene(group('Outer', [inner], rotation=[-math.pi / 2, 0.0, 0.0]),
                 group('Holder', [mesh('M')], position=[1.0, 0.0, 0.0]))
    first = compile_scene(root)

    index = GraphIndex(root)
    emitter = MarkupEmitter(CompileContext(CompileOptions(), index))
    assert emitter.prune_to_fixed_point(root, index.objects) == 0
    second = compile_scene(root)
    assert second.scene == first.scene


def test_deterministic_output():
    def build():
        shared = geometry('shared')
        steel = material('Steel')
        return scene(
            group('A', [mesh('Bolt', geo=shared, mat=steel, position=[1.0, 0.0, 0.0])],
                  rotation=[0.0, math.pi / 4, 0.0]),
            mesh('Bolt', geo=shared, mat=steel),
            _light('Lamp', intensity=2.0),
        )
    a = compile_scene(build(), instancing='sparse')
    b = compile_scene(build(), instancing='sparse')
    assert a.text == b.text
    assert a.types_text == b.types_text


def test_debug_trace_logs_pruning():
    records = []

    class _Collect(logging.Handler):
        def emit(self, record):
            records.append(record.getMessage())

    handler = _Collect()
    logger = logging.getLogger('tres_builder')
    logger.addHandler(handler)
    old_level = logger.level
    logger.setLevel(logging.INFO)
    try:
        inner = group('Inner', [_light('L1'), _light('L2')], rotation=[math.pi / 2, 0.0, 0.0])
        outer = group('Outer', [inner], rotation=[-math.pi / 2, 0.0, 0.0])
        compile_scene(scene(outer), debug=True)
    finally:
        logger.removeHandler(handler)
        logger.setLevel(old_level)
    assert 'group Outer removed (aggressive: double negative rotation)' in records


def test_debug_dump_reports_geometry_and_colour():
    records = []

    class _Collect(logging.Handler):
        def emit(self, record):
            records.append(record.getMessage())

    handler = _Collect()
    logger = logging.getLogger('tres_builder')
    logger.addHandler(handler)
    old_level = logger.level
    logger.setLevel(logging.INFO)
    try:
        red = Material(uuid='mat-red', name='Red', color='ff0000')
        body = mesh('Body', geo=Geometry(uuid='g1', vertex_count=24, index_count=36), mat=red)
        compile_scene(scene(body), debug=True)
    finally:
        logger.removeHandler(handler)
        logger.setLevel(old_level)
    dumped = [r for r in records if r.startswith('  Mesh Body ')]
    assert len(dumped) == 1
    assert 'geo: 24v 36i' in dumped[0]
    assert dumped[0].endswith('mat: Red-mat-red #ff0000')


# ---------------------------------------------------------------------------
# Instancing
# ---------------------------------------------------------------------------

def test_sparse_instancing_threshold():
    shared = geometry('g1')
    steel = material('Steel')
    a = mesh('Bolt', geo=shared, mat=steel)
    b = mesh('Bolt.001', geo=shared, mat=steel, position=[1.0, 0.0, 0.0])
    c = mesh('Nut', mat=steel)
    out = compile_scene(scene(a, b, c), instancing=InstancingMode.SPARSE)
    assert scene_lines(out) == [
        '<instances.Bolt />',
        '<instances.Bolt :position="[1, 0, 0]" />',
        '<TresMesh :geometry="nodes.Nut.geometry" :material="materials.Steel" />',
    ]
    assert "import { defineComponent, h } from 'vue'" in out.text
    assert "  Bolt: defineComponent((_, { attrs, slots }) => () =>\n" \
           "    h('TresMesh', { geometry: nodes.Bolt.geometry, material: materials.Steel, " \
           "...attrs }, slots),\n  ),\n" in out.text
    assert 'Nut:' not in out.text


def test_instance_all():
    out = compile_scene(scene(mesh('Left'), mesh('Right')), instancing='all')
    assert scene_lines(out) == ['<instances.Left />', '<instances.Right />']
    assert out.types.instances == ['Left', 'Right']
    assert "export type ContextType = Record<'Left' | 'Right', Component>" in out.types_text


def test_instancing_off_emits_plain_meshes():
    shared = geometry('g1')
    out = compile_scene(scene(mesh('A', geo=shared), mesh('B', geo=shared)))
    assert 'instances.' not in out.text
    assert 'defineComponent' not in out.text


def test_gpu_instanced_mesh():
    trees = mesh('Trees', type='InstancedMesh', count=64, instance_matrix=True,
                 mat=material('Leaves'))
    out = compile_scene(scene(trees), instancing='all')
    assert scene_lines(out) == [
        '<TresInstancedMesh :args="[nodes.Trees.geometry, materials.Leaves, 64]" '
        ':instance-matrix="nodes.Trees.instanceMatrix" />'
    ]


# ---------------------------------------------------------------------------
# Special nodes
# ---------------------------------------------------------------------------

def test_light_with_target():
    spot = SceneNode(SPOT_LIGHT, name='Spot', position=[0.0, 3.0, 0.0], intensity=2.0,
                     angle=math.pi / 4, penumbra=0.5, decay=2.0, distance=0.0)
    target = SceneNode(OBJECT3D, position=[0.0, 0.0, -1.0])
    spot.add(target)
    spot.target = target
    out = compile_scene(scene(spot))
    assert scene_lines(out) == [
        '<TresSpotLight :intensity="2" :angle="Math.PI / 4" :penumbra="0.5" :decay="2" '
        ':position="[0, 3, 0]" :target="nodes.Spot.target">',
        '<TresPrimitive :object="nodes.Spot.target" :position="[0, 0, -1]" />',
        '</TresSpotLight>',
    ]


def test_light_colour():
    lamp = _light('Lamp', color='FFAA00', intensity=0.5)
    white = _light('White', color='ffffff')
    out = compile_scene(scene(lamp, white))
    assert scene_lines(out) == ['<TresPointLight :intensity="0.5" color="#ffaa00" />',
                                '<TresPointLight />']


def test_bones_passthrough():
    spine = SceneNode(BONE, name='Spine', position=[0.0, 1.0, 0.0])
    hips = SceneNode(BONE, name='Hips', children=[spine])
    body = mesh('Body', type=SKINNED_MESH, skeleton='skin:0', mat=material('Skin'))
    armature = group('Armature', [hips, body], type=OBJECT3D)
    out = compile_scene(scene(armature))
    assert scene_lines(out) == [
        '<TresPrimitive :object="nodes.Hips" />',
        '<TresSkinnedMesh :geometry="nodes.Body.geometry" :material="materials.Skin" '
        ':skeleton="nodes.Body.skeleton" />',
    ]
    assert dict(out.types.nodes) == {'Body': 'SkinnedMesh', 'Hips': 'Bone'}


def test_bones_verbatim():
    spine = SceneNode(BONE, name='Spine', position=[0.0, 1.0, 0.0])
    hips = SceneNode(BONE, name='Hips', children=[spine])
    out = compile_scene(scene(hips), keep_bones=True)
    assert scene_lines(out) == [
        '<TresPrimitive :object="nodes.Hips">',
        '<TresPrimitive :object="nodes.Spine" :position="[0, 1, 0]" />',
        '</TresPrimitive>',
    ]


def test_camera_overrides():
    cam = SceneNode(PERSPECTIVE_CAMERA, name='Cam', fov=35.0, far=100.0,
                    position=[0.0, 0.0, 5.0])
    out = compile_scene(scene(cam))
    assert scene_lines(out) == [
        '<TresPerspectiveCamera :make-default="false" :far="100" :fov="35" '
        ':position="[0, 0, 5]" />'
    ]


def test_shadow_flags():
    flagged = mesh('Flagged', cast_shadow=True)
    out = compile_scene(scene(flagged))
    assert scene_lines(out) == [
        '<TresMesh :geometry="nodes.Flagged.geometry" :material="materials.Default" cast-shadow />'
    ]
    out = compile_scene(scene(mesh('Flagged', cast_shadow=True, receive_shadow=True)),
                        shadows=True)
    assert scene_lines(out) == [
        '<TresMesh cast-shadow receive-shadow :geometry="nodes.Flagged.geometry" '
        ':material="materials.Default" />'
    ]


def test_hidden_mesh():
    out = compile_scene(scene(mesh('Hidden', visible=False)))
    assert ':visible="false"' in out.scene


def test_user_data():
    node = mesh('Tagged', user_data={'id': 7, 'label': "it's"})
    out = compile_scene(scene(node), meta=True)
    assert ":user-data='{\"id\":7,\"label\":\"it&#39;s\"}'" in out.scene
    assert out.warnings == []

    ignored = compile_scene(scene(mesh('Tagged', user_data={'id': 7})))
    assert 'user-data' not in ignored.scene


def test_user_data_not_serialisable():
    bad = mesh('Bad', user_data={'handle': object()})
    nan = mesh('Nan', user_data={'value': float('nan')})
    out = compile_scene(scene(bad, nan), meta=True)
    assert 'user-data' not in out.scene
    assert [w.code for w in out.warnings] == ['META-001', 'META-001']
    assert out.warnings[0].node_name == 'Bad'
    assert out.warnings[1].node_name == 'Nan'


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

def test_malformed_graph_aborts():
    broken = SceneNode('Mesh', name='Broken', material=material('Red'))
    try:
        compile_scene(scene(broken))
    except MalformedGraphError as e:
        assert e.node_name == 'Broken'
        return
    raise AssertionError("Expected MalformedGraphError")


def test_traversal_error_carries_path():
    lamp = _light('Lamp', intensity='bright')
    root = scene(_light('Ok'), lamp, name='Scene')
    try:
        compile_scene(root, keep_groups=True)
    except TraversalError as e:
        assert e.node_path == 'Scene/Lamp'
        assert isinstance(e.cause, ValueError)
        assert e.node_name == 'Lamp'
        assert 'Scene/Lamp' in str(e)
        return
    raise AssertionError("Expected TraversalError")


def test_markup_tree_matches_text():
    out = compile_scene(scene(_light('A'), group('G', [_light('B')], position=[1.0, 0.0, 0.0]),
                              mesh('M')),
                        keep_groups=True)
    tags = [el.tag for el in walk(out.markup)]
    assert tags == ['TresGroup', 'TresPointLight', 'TresGroup', 'TresPointLight', 'TresMesh']


def main():
    print("=" * 70)
    print("tres_builder Compiler Test Suite")
    print("=" * 70)

    print("\n--- Emission ---")
    _test("group with single mesh", test_group_with_single_mesh)
    _test("default transform elided", test_default_transform_elided)
    _test("transform attributes", test_transform_attributes)
    _test("angle canonicalisation", test_angle_canonicalisation)
    _test("precision", test_precision)
    _test("identifier sanitisation", test_identifier_sanitisation)
    _test("name attribute policy", test_name_attribute_policy)
    _test("sibling order preserved", test_sibling_order_preserved)
    _test("keep groups keeps hierarchy", test_keep_groups_keeps_hierarchy)

    print("\n--- Pruning ---")
    _test("rotation cancellation", test_rotation_cancellation)
    _test("rotation cancellation with child props", test_rotation_cancellation_with_child_props)
    _test("transform passthrough", test_transform_passthrough)
    _test("passthrough blocked by child transform",
          test_transform_passthrough_blocked_by_child_transform)
    _test("vacuous subtree removed", test_vacuous_subtree_removed)
    _test("vacuous root emits nothing", test_vacuous_root_emits_nothing)
    _test("animated models keep groups", test_animated_models_keep_groups)
    _test("pruning is idempotent", test_pruning_is_idempotent)
    _test("deterministic output", test_deterministic_output)
    _test("debug trace logs pruning", test_debug_trace_logs_pruning)
    _test("debug dump reports geometry and colour", test_debug_dump_reports_geometry_and_colour)

    print("\n--- Instancing ---")
    _test("sparse threshold", test_sparse_instancing_threshold)
    _test("instance all", test_instance_all)
    _test("instancing off", test_instancing_off_emits_plain_meshes)
    _test("GPU instanced mesh", test_gpu_instanced_mesh)

    print("\n--- Special nodes ---")
    _test("light with target", test_light_with_target)
    _test("light colour", test_light_colour)
    _test("bones passthrough", test_bones_passthrough)
    _test("bones verbatim", test_bones_verbatim)
    _test("camera overrides", test_camera_overrides)
    _test("shadow flags", test_shadow_flags)
    _test("hidden mesh", test_hidden_mesh)
    _test("user data", test_user_data)
    _test("user data not serialisable", test_user_data_not_serialisable)

    print("\n--- Errors ---")
    _test("malformed graph aborts", test_malformed_graph_aborts)
    _test("traversal error carries path", test_traversal_error_carries_path)
    _test("markup tree matches text", test_markup_tree_matches_text)

    print("\n" + "=" * 70)
    print("Results: {} passed, {} failed".format(_PASSED, _FAILED))
    if _ERRORS:
        print("\nFailures:")
        for name, err in _ERRORS:
            print("  {} -- {}".format(name, err))
    print("=" * 70)
    return 0 if _FAILED == 0 else 1


if __name__ == '__main__':
    sys.exit(main())
