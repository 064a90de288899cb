"""
Static type description of the loaded model.

Lists the node and material names the generated component can address
together with their three.js classes, and the animation clip names.
Nested bones are left out: they are reached through their skeleton.
"""

import json
from collections import OrderedDict


class TypeDescriptor(object):
    """
    Attributes:
        nodes: OrderedDict of node name -> three.js class name.
        materials: OrderedDict of material name -> three.js class name.
        animations: List of animation clip names.
        instances: List of instance declaration names.
    """

    def __init__(self, nodes, materials, animations, instances=None):
        self.nodes = nodes
        self.materials = materials
        self.animations = animations
        self.instances = instances or []

    def __repr__(self):
        return "TypeDescriptor({} nodes, {} materials, {} animations)".format(
            len(self.nodes), len(self.materials), len(self.animations))

    @property
    def action_union(self):
        """TypeScript union of the animation names, e.g. '"Run" | "Walk"'."""
        return ' | '.join(json.dumps(name, ensure_ascii=False) for name in self.animations)

    def to_dict(self):
        return {
            'nodes': dict(self.nodes),
            'materials': dict(self.materials),
            'animations': list(self.animations),
            'instances': list(self.instances),
        }


def describe_types(objects, animations=(), index=None):
    """
    Build a TypeDescriptor from the indexed node list.

    Args:
        objects: Nodes of the compiled scene (GraphIndex.objects).
        animations: AnimationClip list.
        index: Optional GraphIndex, used to list instance declarations.
    """
    nodes = OrderedDict()
    for node in objects:
        if node.removed:
            continue
        if node.is_mesh:
            nodes[node.name] = node.type
    for node in objects:
        if node.removed or not node.is_bone:
            continue
        parent = node.parent
        if parent is not None and parent.is_bone:
            continue
        nodes[node.name] = node.type

    materials = OrderedDict()
    for node in objects:
        material = node.material
        if material is not None and material.name and material.name not in materials:
            materials[material.name] = material.type

    instances = []
    if index is not None:
        instances = [rec.name for rec in index.instances()]

    return TypeDescriptor(nodes, materials, [clip.name for clip in animations], instances)
