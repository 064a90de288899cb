"""
In-memory scene graph consumed by the compiler.

Mirrors the subset of the three.js object model that the generated
component refers to: every node carries a three.js class name (``type``),
a local transform (position, XYZ Euler rotation, scale) and optional
geometry / material / skeleton / morph target / instancing references.

Parent links are weak references.  A node is owned by the ``children``
list of its parent; the root is owned by the caller.

The ``removed`` marker is transient state written by the pruning pass.
"""

import uuid as _uuid
import weakref


# ---------------------------------------------------------------------------
# Node types (three.js class names)
# ---------------------------------------------------------------------------

SCENE = 'Scene'
GROUP = 'Group'
OBJECT3D = 'Object3D'
MESH = 'Mesh'
SKINNED_MESH = 'SkinnedMesh'
INSTANCED_MESH = 'InstancedMesh'
BONE = 'Bone'
PERSPECTIVE_CAMERA = 'PerspectiveCamera'
ORTHOGRAPHIC_CAMERA = 'OrthographicCamera'
POINT_LIGHT = 'PointLight'
SPOT_LIGHT = 'SpotLight'
DIRECTIONAL_LIGHT = 'DirectionalLight'
AMBIENT_LIGHT = 'AmbientLight'
HEMISPHERE_LIGHT = 'HemisphereLight'

GROUP_TYPES = frozenset([SCENE, GROUP, OBJECT3D])
MESH_TYPES = frozenset([MESH, SKINNED_MESH, INSTANCED_MESH])
CAMERA_TYPES = frozenset([PERSPECTIVE_CAMERA, ORTHOGRAPHIC_CAMERA])

# three.js camera defaults, used to elide unchanged camera attributes
CAMERA_DEFAULTS = {
    'zoom': 1.0,
    'near': 0.1,
    'far': 2000.0,
    'fov': 50.0,
}


def _new_id():
    return str(_uuid.uuid4()).upper()


class Geometry(object):
    """Geometry reference.  Vertex and index counts only feed the debug dump."""

    def __init__(self, uuid=None, name='', vertex_count=0, index_count=0):
        self.uuid = uuid if uuid is not None else _new_id()
        self.name = name
        self.vertex_count = vertex_count
        self.index_count = index_count

    def __repr__(self):
        return "Geometry({!r})".format(self.uuid)


class Material(object):
    """Material reference: identity, display name, three.js class name and
    base colour as a hex string."""

    def __init__(self, uuid=None, name='', type='MeshStandardMaterial', color=None):
        self.uuid = uuid if uuid is not None else _new_id()
        self.name = name
        self.type = type
        self.color = color

    def __repr__(self):
        return "Material({!r}, {!r})".format(self.name, self.type)


class AnimationClip(object):
    """Animation clip.  The compiler only reads ``name``."""

    def __init__(self, name, duration=0.0, tracks=None):
        self.name = name
        self.duration = duration
        self.tracks = tracks or []

    def __repr__(self):
        return "AnimationClip({!r})".format(self.name)


class SceneNode(object):
    """
    A node of the scene graph.

    Args:
        type: three.js class name (see the module constants).
        name: Display name, may be empty or contain any character.
        uuid: Stable identity, generated when omitted.
        position: [x, y, z] local translation.
        rotation: [x, y, z] local XYZ Euler rotation in radians.
        scale: [x, y, z] local scale.
        children: Optional iterable of child nodes, attached in order.
        **attrs: Any other node attribute (geometry, material, skeleton,
            morph_target_dictionary, intensity, color, user_data, ...).
    """

    def __init__(self, type=OBJECT3D, name='', uuid=None, position=None,
                 rotation=None, scale=None, children=None, **attrs):
        self.type = type
        self.name = name
        self.uuid = uuid if uuid is not None else _new_id()

        self.position = list(position) if position is not None else [0.0, 0.0, 0.0]
        self.rotation = list(rotation) if rotation is not None else [0.0, 0.0, 0.0]
        self.scale = list(scale) if scale is not None else [1.0, 1.0, 1.0]
        self.up = [0.0, 1.0, 0.0]

        self.geometry = None
        self.material = None
        self.skeleton = None
        self.morph_target_dictionary = None
        self.morph_target_influences = None
        self.instance_matrix = None
        self.instance_color = None
        self.count = None

        self.visible = True
        self.cast_shadow = False
        self.receive_shadow = False

        # lights
        self.color = None
        self.intensity = None
        self.angle = None
        self.penumbra = None
        self.decay = None
        self.distance = None
        self.target = None

        # cameras
        self.zoom = None
        self.near = None
        self.far = None
        self.fov = None
        if type in CAMERA_TYPES:
            self.zoom = CAMERA_DEFAULTS['zoom']
            self.near = CAMERA_DEFAULTS['near']
            self.far = CAMERA_DEFAULTS['far']
            if type == PERSPECTIVE_CAMERA:
                self.fov = CAMERA_DEFAULTS['fov']

        self.user_data = {}
        self.removed = False

        for key, value in attrs.items():
            if not hasattr(self, key):
                raise TypeError("Unknown SceneNode attribute: {}".format(key))
            setattr(self, key, value)

        self.children = []
        self._parent = None
        for child in children or ():
            self.add(child)

    def __repr__(self):
        return "SceneNode({}, {!r})".format(self.type, self.name)

    # ------------------------------------------------------------------
    # Kind helpers
    # ------------------------------------------------------------------

    @property
    def kind(self):
        """lowerCamel element kind; every group-like type is a 'group'."""
        if self.type in GROUP_TYPES:
            return 'group'
        return self.type[0].lower() + self.type[1:]

    @property
    def is_group(self):
        return self.type in GROUP_TYPES

    @property
    def is_mesh(self):
        return self.type in MESH_TYPES

    @property
    def is_instanced_mesh(self):
        return self.type == INSTANCED_MESH

    @property
    def is_bone(self):
        return self.type == BONE

    @property
    def is_camera(self):
        return self.type in CAMERA_TYPES

    @property
    def is_light(self):
        return self.type.endswith('Light')

    # ------------------------------------------------------------------
    # Hierarchy
    # ------------------------------------------------------------------

    @property
    def parent(self):
        if self._parent is None:
            return None
        return self._parent()

    def add(self, child):
        """Attach ``child`` as the last child, detaching it from its old parent."""
        self._detach(child)
        child._parent = weakref.ref(self)
        self.children.append(child)
        return child

    def insert_before(self, child, anchor):
        """Attach ``child`` right before ``anchor`` (an existing child)."""
        if child is anchor:
            return child
        self._detach(child)
        child._parent = weakref.ref(self)
        self.children.insert(self.children.index(anchor), child)
        return child

    def remove(self, child):
        if child in self.children:
            self.children.remove(child)
            child._parent = None

    @staticmethod
    def _detach(child):
        old = child.parent
        if old is not None:
            old.remove(child)

    def traverse(self):
        """Yield this node and all descendants in pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def ancestors(self):
        """Yield parents from the direct parent up to the root."""
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def label(self):
        """Name used in logs and error paths."""
        if self.name:
            return self.name
        return "<{}:{}>".format(self.type, self.uuid[:8])

    def path(self):
        labels = [self.label()] + [n.label() for n in self.ancestors()]
        return '/'.join(reversed(labels))


def color_to_hex(rgb):
    """Convert an (r, g, b) float triple in [0, 1] to a lowercase hex string."""
    channels = []
    for value in rgb[:3]:
        value = min(max(float(value), 0.0), 1.0)
        channels.append(int(round(value * 255)))
    return '{:02x}{:02x}{:02x}'.format(*channels)
