"""
Transform flattening pre-pass.

Bakes the transform a mesh inherits from its ancestors into its local
transform and moves the mesh directly under the scene root.  Groups left
behind then carry no renderable content and are removed by the pruning
pass, which keeps the generated markup shallow.
"""

import logging

from .transforms import world_matrix, decompose

log = logging.getLogger(__name__)


def flatten_transforms(root, objects=None):
    """
    Reparent all meshes below ``root`` to ``root`` keeping their pose.

    Args:
        root: Scene root node.  Its own transform still applies to the
            meshes after flattening, so it is not baked in.
        objects: Optional pre-order node list to process (defaults to a
            fresh traversal of ``root``).

    Returns:
        int: Number of meshes moved to the root.
    """
    if objects is None:
        objects = list(root.traverse())

    moved = 0
    for node in objects:
        if not node.is_mesh or node is root:
            continue
        node.position, node.rotation, node.scale = decompose(
            world_matrix(node, stop=root))
        if node.parent is not root:
            root.add(node)
            moved += 1

    log.debug("Flattened %d meshes into the scene root", moved)
    return moved
