"""
glTF 2.0 reader producing the compiler's scene graph.

Containers are read with pygltflib (``.glb`` binary or ``.gltf`` JSON); the
glTF document it parses is then walked as plain JSON to build a SceneNode
tree the way three.js' GLTFLoader lays out the scene:

    - multi-primitive meshes become a Group holding one Mesh per primitive
    - skin joints become Bones, skinned meshes SkinnedMesh
    - KHR_lights_punctual lights; spot and directional lights get a target
      Object3D as their first child
    - EXT_mesh_gpu_instancing meshes become InstancedMesh
    - node names are sanitised and made unique

Vertex buffers are never decoded: the compiler only needs geometry and
material identities.
"""

import os
import re
import math
import struct
import logging
from collections import namedtuple

from .scene_graph import (SceneNode, Geometry, Material, AnimationClip,
                          color_to_hex, SCENE, GROUP, OBJECT3D, MESH,
                          SKINNED_MESH, INSTANCED_MESH, BONE,
                          PERSPECTIVE_CAMERA, ORTHOGRAPHIC_CAMERA,
                          POINT_LIGHT, SPOT_LIGHT, DIRECTIONAL_LIGHT)
from .material_fixups import UNLIT_EXTENSION
from .transforms import decompose, matrix_from_gltf, quaternion_to_euler

try:
    import pygltflib
    _HAS_GLTFLIB = True
except ImportError:
    _HAS_GLTFLIB = False

log = logging.getLogger(__name__)

GLB_MAGIC = b'glTF'
GLB_VERSION = 2

LIGHTS_EXTENSION = 'KHR_lights_punctual'
INSTANCING_EXTENSION = 'EXT_mesh_gpu_instancing'

_WHITESPACE_RE = re.compile(r'\s')
_RESERVED_RE = re.compile(r'[\[\]\.:/]')


LoadedModel = namedtuple('LoadedModel', ['scene', 'animations', 'json'])


def sanitize_node_name(name):
    """Node name as three.js stores it: whitespace -> '_', []. :/ dropped."""
    return _RESERVED_RE.sub('', _WHITESPACE_RE.sub('_', name))


# ---------------------------------------------------------------------------
# Container parsing
# ---------------------------------------------------------------------------

def read_gltf_json(data):
    """
    Extract the glTF JSON document from GLB or JSON bytes.

    Raises:
        ImportError: pygltflib is not installed.
        ValueError: Unsupported GLB version, truncated container, missing
            JSON chunk or invalid JSON.
    """
    if not _HAS_GLTFLIB:
        raise ImportError(
            "pygltflib is required to read glTF files. "
            "Install it with: pip install pygltflib"
        )

    if data[:4] == GLB_MAGIC:
        if len(data) < 12:
            raise ValueError("GLB container too small: {} bytes".format(len(data)))
        version = int.from_bytes(data[4:8], 'little')
        if version != GLB_VERSION:
            raise ValueError("Unsupported GLB version: {}".format(version))
        try:
            gltf = pygltflib.GLTF2.load_from_bytes(data)
        except (OSError, struct.error, KeyError, TypeError, AttributeError) as e:
            raise ValueError("Invalid GLB container: {}".format(e))
        if gltf is None:
            raise ValueError("GLB container has no JSON chunk")
    else:
        try:
            gltf = pygltflib.GLTF2.from_json(data.decode('utf-8-sig'))
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError("Invalid glTF document: {}".format(e))

    return _strip_nulls(gltf.to_dict())


def _strip_nulls(value):
    """Drop the optional properties pygltflib leaves as None when unset."""
    if isinstance(value, dict):
        return dict((k, _strip_nulls(v)) for k, v in value.items() if v is not None)
    if isinstance(value, list):
        return [_strip_nulls(v) for v in value]
    return value


def load_gltf(source):
    """
    Load a glTF model.

    Args:
        source: Path to a .glb / .gltf file, raw bytes, or an already
            parsed glTF JSON dict.

    Returns:
        LoadedModel: (scene root SceneNode, list of AnimationClip, JSON dict).
    """
    if isinstance(source, dict):
        gltf = source
    elif isinstance(source, (bytes, bytearray, memoryview)):
        gltf = read_gltf_json(bytes(source))
    else:
        if not os.path.isfile(source):
            raise FileNotFoundError("glTF file not found: {}".format(source))
        with open(source, 'rb') as f:
            gltf = read_gltf_json(f.read())

    scene, animations = _SceneBuilder(gltf).build()
    log.info("Loaded glTF: %d nodes, %d animations",
             sum(1 for _ in scene.traverse()), len(animations))
    return LoadedModel(scene, animations, gltf)


# ---------------------------------------------------------------------------
# Scene construction
# ---------------------------------------------------------------------------

class _SceneBuilder(object):
    """Builds the SceneNode tree of the default scene of a glTF document."""

    def __init__(self, gltf):
        self.gltf = gltf
        self.nodes = gltf.get('nodes') or []
        self.meshes = gltf.get('meshes') or []
        self.materials = gltf.get('materials') or []
        self.cameras = gltf.get('cameras') or []
        self.accessors = gltf.get('accessors') or []
        extensions = gltf.get('extensions') or {}
        self.lights = (extensions.get(LIGHTS_EXTENSION) or {}).get('lights') or []

        self.joints = set()
        for skin in gltf.get('skins') or []:
            self.joints.update(skin.get('joints') or [])

        self._geometries = {}
        self._materials = {}
        self._default_material = None
        self._names_used = {}

    def build(self):
        scenes = self.gltf.get('scenes') or []
        if scenes:
            scene_index = self.gltf.get('scene', 0)
            if scene_index >= len(scenes):
                raise ValueError("Default scene {} does not exist".format(scene_index))
            scene_def = scenes[scene_index]
            root_indices = scene_def.get('nodes') or []
        else:
            scene_def = {}
            referenced = set()
            for node_def in self.nodes:
                referenced.update(node_def.get('children') or [])
            root_indices = [i for i in range(len(self.nodes)) if i not in referenced]

        root = SceneNode(SCENE, name=scene_def.get('name', ''))
        for index in root_indices:
            root.add(self._build_node(index, frozenset()))

        animations = []
        for i, anim in enumerate(self.gltf.get('animations') or []):
            animations.append(AnimationClip(anim.get('name') or 'animation_{}'.format(i),
                                            tracks=anim.get('channels') or []))
        return root, animations

    def _unique_name(self, original):
        name = sanitize_node_name(original or '')
        if name in self._names_used:
            self._names_used[name] += 1
            return '{}_{}'.format(name, self._names_used[name])
        self._names_used[name] = 0
        return name

    def _build_node(self, index, visiting):
        if index in visiting:
            raise ValueError("glTF node {} is its own ancestor".format(index))
        if index >= len(self.nodes):
            raise ValueError("glTF node {} does not exist".format(index))
        node_def = self.nodes[index]
        extensions = node_def.get('extensions') or {}
        name = self._unique_name(node_def.get('name', '')) if 'name' in node_def else ''

        if index in self.joints:
            node = SceneNode(BONE)
        elif 'mesh' in node_def:
            node = self._mesh_node(node_def, name)
        elif 'camera' in node_def:
            node = self._camera_node(node_def['camera'])
        elif LIGHTS_EXTENSION in extensions:
            node = self._light_node(extensions[LIGHTS_EXTENSION].get('light', 0))
        else:
            node = SceneNode(OBJECT3D)

        node.name = name
        node.position, node.rotation, node.scale = self._transform(node_def)
        if isinstance(node_def.get('extras'), dict):
            node.user_data = dict(node_def['extras'])

        visiting = visiting | {index}
        for child_index in node_def.get('children') or []:
            node.add(self._build_node(child_index, visiting))
        return node

    @staticmethod
    def _transform(node_def):
        if 'matrix' in node_def:
            return decompose(matrix_from_gltf(node_def['matrix']))
        position = [float(v) for v in node_def.get('translation', (0.0, 0.0, 0.0))]
        if 'rotation' in node_def:
            rotation = quaternion_to_euler(node_def['rotation'])
        else:
            rotation = [0.0, 0.0, 0.0]
        scale = [float(v) for v in node_def.get('scale', (1.0, 1.0, 1.0))]
        return position, rotation, scale

    # ------------------------------------------------------------------
    # Meshes
    # ------------------------------------------------------------------

    def _mesh_node(self, node_def, name):
        mesh_index = node_def['mesh']
        if mesh_index >= len(self.meshes):
            raise ValueError("glTF mesh {} does not exist".format(mesh_index))
        mesh_def = self.meshes[mesh_index]
        primitives = mesh_def.get('primitives') or []
        if len(primitives) == 1:
            return self._primitive_node(node_def, mesh_index, 0)

        group = SceneNode(GROUP)
        base = name or sanitize_node_name(mesh_def.get('name', ''))
        for prim_index in range(len(primitives)):
            child = self._primitive_node(node_def, mesh_index, prim_index)
            child.name = self._unique_name('{}_{}'.format(base, prim_index))
            group.add(child)
        return group

    def _primitive_node(self, node_def, mesh_index, prim_index):
        mesh_def = self.meshes[mesh_index]
        prim = mesh_def['primitives'][prim_index]
        extensions = node_def.get('extensions') or {}

        if INSTANCING_EXTENSION in extensions:
            node = SceneNode(INSTANCED_MESH)
            node.instance_matrix = True
            node.count = self._instance_count(extensions[INSTANCING_EXTENSION])
        elif 'skin' in node_def:
            node = SceneNode(SKINNED_MESH)
            node.skeleton = 'skin:{}'.format(node_def['skin'])
        else:
            node = SceneNode(MESH)

        node.geometry = self._geometry(mesh_index, prim_index)
        if prim.get('material') is not None:
            node.material = self._material(prim['material'])
        else:
            node.material = self._fallback_material()

        targets = prim.get('targets') or []
        if targets:
            weights = mesh_def.get('weights') or [0.0] * len(targets)
            node.morph_target_influences = [float(w) for w in weights]
            names = (mesh_def.get('extras') or {}).get('targetNames') or []
            dictionary = {}
            for i in range(len(targets)):
                key = names[i] if i < len(names) and names[i] else str(i)
                dictionary[key] = i
            node.morph_target_dictionary = dictionary
        return node

    def _instance_count(self, ext):
        for accessor_index in (ext.get('attributes') or {}).values():
            if accessor_index < len(self.accessors):
                return self.accessors[accessor_index].get('count')
        return None

    def _geometry(self, mesh_index, prim_index):
        key = (mesh_index, prim_index)
        if key not in self._geometries:
            prim = self.meshes[mesh_index]['primitives'][prim_index]
            position = (prim.get('attributes') or {}).get('POSITION')
            vertex_count = 0
            if position is not None and position < len(self.accessors):
                vertex_count = self.accessors[position].get('count', 0)
            index_count = 0
            indices = prim.get('indices')
            if indices is not None and indices < len(self.accessors):
                index_count = self.accessors[indices].get('count', 0)
            self._geometries[key] = Geometry(
                uuid='geometry:{}:{}'.format(mesh_index, prim_index),
                name=self.meshes[mesh_index].get('name', ''),
                vertex_count=vertex_count,
                index_count=index_count,
            )
        return self._geometries[key]

    def _material(self, index):
        if index not in self._materials:
            if index >= len(self.materials):
                raise ValueError("glTF material {} does not exist".format(index))
            mat_def = self.materials[index]
            unlit = UNLIT_EXTENSION in (mat_def.get('extensions') or {})
            pbr = mat_def.get('pbrMetallicRoughness') or {}
            self._materials[index] = Material(
                uuid='material:{}'.format(index),
                name=mat_def.get('name', ''),
                type='MeshBasicMaterial' if unlit else 'MeshStandardMaterial',
                color=color_to_hex(pbr.get('baseColorFactor', (1.0, 1.0, 1.0))),
            )
        return self._materials[index]

    def _fallback_material(self):
        if self._default_material is None:
            self._default_material = Material(uuid='material:default')
        return self._default_material

    # ------------------------------------------------------------------
    # Cameras and lights
    # ------------------------------------------------------------------

    def _camera_node(self, index):
        if index >= len(self.cameras):
            raise ValueError("glTF camera {} does not exist".format(index))
        cam_def = self.cameras[index]
        if cam_def.get('type') == 'orthographic':
            params = cam_def.get('orthographic') or {}
            node = SceneNode(ORTHOGRAPHIC_CAMERA)
            node.near = float(params.get('znear', node.near))
            node.far = float(params.get('zfar', node.far))
            return node
        params = cam_def.get('perspective') or {}
        node = SceneNode(PERSPECTIVE_CAMERA)
        node.fov = math.degrees(params.get('yfov', math.radians(node.fov)))
        node.near = float(params.get('znear') or 1.0)
        node.far = float(params.get('zfar') or 2e6)
        return node

    def _light_node(self, index):
        if index >= len(self.lights):
            raise ValueError("KHR_lights_punctual light {} does not exist".format(index))
        light_def = self.lights[index]
        light_type = light_def.get('type')
        if light_type == 'directional':
            node = SceneNode(DIRECTIONAL_LIGHT)
        elif light_type == 'point':
            node = SceneNode(POINT_LIGHT)
        elif light_type == 'spot':
            node = SceneNode(SPOT_LIGHT)
        else:
            raise ValueError("Unknown light type: {}".format(light_type))

        node.color = color_to_hex(light_def.get('color', (1.0, 1.0, 1.0)))
        node.intensity = float(light_def.get('intensity', 1.0))
        if light_type != 'directional':
            node.distance = float(light_def.get('range', 0.0))
            node.decay = 2.0
        if light_type == 'spot':
            spot = light_def.get('spot') or {}
            outer = float(spot.get('outerConeAngle', math.pi / 4))
            inner = float(spot.get('innerConeAngle', 0.0))
            node.angle = outer
            node.penumbra = 1.0 - inner / outer if outer else 0.0
        if light_type in ('directional', 'spot'):
            target = SceneNode(OBJECT3D, position=[0.0, 0.0, -1.0])
            node.add(target)
            node.target = target
        return node
