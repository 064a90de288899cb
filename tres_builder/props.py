"""
Attribute serialisation for a single scene node.

Attribute order is fixed and part of the output format:
camera overrides, geometry / material / instancing references, skeleton,
morph and shadow flags, light parameters, colour, position, rotation,
scale and finally user data.
"""

import json
import math

from .markup import Attribute, bind
from .naming import accessor
from .numeric import fmt, round_number, round_angle, vector_length
from .scene_graph import CAMERA_DEFAULTS, PERSPECTIVE_CAMERA

TRANSFORM_ATTRIBUTES = ('position', 'rotation', 'scale')

_DEFAULT_UP = [0.0, 1.0, 0.0]


def _vector(values, precision, angles=False):
    if angles:
        parts = [round_angle(v, precision) for v in values]
    else:
        parts = [fmt(v, precision) for v in values]
    return '[{}]'.format(', '.join(parts))


def serialize_props(node, ctx):
    """
    Build the ordered attribute list of ``node``.

    Args:
        node: SceneNode to describe.
        ctx: CompileContext of the running compilation.

    Returns:
        list[Attribute]: Attributes in output order.  The ``name``
        attribute is not part of this list.
    """
    options = ctx.options
    precision = options.precision
    ref = ctx.node_ref(node)
    attrs = []

    if node.is_camera:
        attrs.append(bind('make-default', 'false'))
        for key in ('zoom', 'far', 'near'):
            value = getattr(node, key)
            if value is not None and value != CAMERA_DEFAULTS[key]:
                attrs.append(bind(key, fmt(value, precision)))
        if node.type == PERSPECTIVE_CAMERA and node.fov is not None \
                and node.fov != CAMERA_DEFAULTS['fov']:
            attrs.append(bind('fov', fmt(node.fov, precision)))

    if ctx.instance_record(node) is None:
        attrs.extend(_reference_props(node, ctx, ref))
        attrs.extend(_light_props(node, precision))

    if node.color and node.color.lower() != 'ffffff':
        attrs.append(Attribute('color', '#' + node.color.lower()))

    attrs.extend(transform_props(node, precision))

    if options.meta and node.user_data:
        user_data = _user_data(node, ctx)
        if user_data is not None:
            attrs.append(user_data)

    return attrs


def _reference_props(node, ctx, ref):
    attrs = []
    if node.is_mesh and ctx.options.shadows:
        attrs.append(Attribute('cast-shadow'))
        attrs.append(Attribute('receive-shadow'))

    if node.geometry is not None and not node.is_instanced_mesh:
        attrs.append(bind('geometry', ref + '.geometry'))
    if node.material is not None and not node.is_instanced_mesh:
        if node.material.name:
            attrs.append(bind('material', 'materials' + accessor(node.material.name)))
        else:
            attrs.append(bind('material', ref + '.material'))

    if node.instance_matrix is not None:
        attrs.append(bind('instance-matrix', ref + '.instanceMatrix'))
    if node.instance_color is not None:
        attrs.append(bind('instance-color', ref + '.instanceColor'))
    if node.skeleton is not None:
        attrs.append(bind('skeleton', ref + '.skeleton'))
    if node.visible is False:
        attrs.append(bind('visible', 'false'))

    names = [a.name for a in attrs]
    if node.cast_shadow and 'cast-shadow' not in names:
        attrs.append(Attribute('cast-shadow'))
    if node.receive_shadow and 'receive-shadow' not in names:
        attrs.append(Attribute('receive-shadow'))

    if node.morph_target_dictionary is not None:
        attrs.append(bind('morph-target-dictionary', ref + '.morphTargetDictionary'))
    if node.morph_target_influences is not None:
        attrs.append(bind('morph-target-influences', ref + '.morphTargetInfluences'))
    return attrs


def _light_props(node, precision):
    attrs = []
    if node.intensity and round_number(node.intensity, precision):
        attrs.append(bind('intensity', fmt(node.intensity, precision)))
    if node.angle and node.angle != math.pi / 3:
        attrs.append(bind('angle', round_angle(node.angle, precision)))
    if node.penumbra and round_number(node.penumbra, precision) != 0:
        attrs.append(bind('penumbra', fmt(node.penumbra, precision)))
    if node.decay and round_number(node.decay, precision) != 1:
        attrs.append(bind('decay', fmt(node.decay, precision)))
    if node.distance and round_number(node.distance, precision) != 0:
        attrs.append(bind('distance', fmt(node.distance, precision)))
    if node.up is not None and [float(v) for v in node.up] != _DEFAULT_UP:
        attrs.append(bind('up', _vector(node.up, precision)))
    return attrs


def transform_props(node, precision):
    """position / rotation / scale attributes, defaults elided."""
    attrs = []
    if round_number(vector_length(node.position), precision):
        attrs.append(bind('position', _vector(node.position, precision)))
    if round_number(vector_length(node.rotation), precision):
        attrs.append(bind('rotation', _vector(node.rotation, precision, angles=True)))

    scale = [round_number(v, precision) for v in node.scale]
    if scale != [1.0, 1.0, 1.0]:
        if scale[0] == scale[1] == scale[2]:
            attrs.append(bind('scale', fmt(scale[0], precision)))
        else:
            attrs.append(bind('scale', _vector(scale, precision)))
    return attrs


def _user_data(node, ctx):
    try:
        encoded = json.dumps(node.user_data, separators=(',', ':'),
                             allow_nan=False, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        ctx.warn('META-001',
                 "User data of {} is not JSON serialisable, omitted ({})".format(
                     node.label(), e),
                 node)
        return None
    return Attribute('user-data', encoded, bound=True, quote="'")
