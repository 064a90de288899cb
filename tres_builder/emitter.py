"""
Recursive markup compiler.

Children are compiled before their parent and in declaration order; the
parent then builds its own element, serialises its attributes and lets the
pruning engine decide whether the element is emitted at all.
"""

import logging

from .errors import CompileError, TraversalError
from .markup import Attribute, Element, InstancedRef, bind
from .naming import accessor
from .props import serialize_props
from .pruning import PruningEngine, reparent_removed

log = logging.getLogger(__name__)

PRIMITIVE = 'TresPrimitive'
INSTANCED_MESH_TAG = 'TresInstancedMesh'


def element_tag(node):
    """TresJS component name of a node: 'Mesh' -> 'TresMesh'."""
    kind = node.kind
    return 'Tres' + kind[0].upper() + kind[1:]


class MarkupEmitter(object):
    """
    Compiles SceneNode trees into markup elements.

    Args:
        ctx: CompileContext shared by all passes of one compilation.
    """

    def __init__(self, ctx):
        self.ctx = ctx
        self.pruner = PruningEngine(ctx, self.compile_node)

    def compile_node(self, node, silent=False):
        """
        Compile ``node`` and its subtree.

        Returns:
            list[Element]: Zero or more elements replacing the node.

        Raises:
            TraversalError: An unexpected exception escaped; carries the
                path of the innermost failing node.
        """
        try:
            return self._compile(node, silent)
        except CompileError:
            raise
        except Exception as e:
            raise TraversalError(node, e) from e

    def _compile(self, node, silent):
        ctx = self.ctx
        options = ctx.options
        ref = ctx.node_ref(node)

        # Removed node: hoist whatever children it still holds
        if node.removed:
            result = []
            for child in node.children:
                result.extend(self.compile_node(child))
            return result

        if node.is_bone and not options.keep_bones:
            return [Element(PRIMITIVE, [bind('object', ref)])]

        if node.is_light and node.target is not None and node.children \
                and node.children[0] is node.target:
            target = Element(PRIMITIVE, [bind('object', ref + '.target')] +
                             serialize_props(node.target, ctx))
            attrs = serialize_props(node, ctx) + [bind('target', ref + '.target')]
            return [Element(element_tag(node), attrs, [target])]

        children = []
        for child in node.children:
            children.extend(self.compile_node(child))

        record = ctx.instance_record(node)
        if record is not None:
            element = InstancedRef(record)
        elif node.is_instanced_mesh:
            element = Element(INSTANCED_MESH_TAG, [bind('args', self._instanced_args(node))])
        elif node.is_bone:
            element = Element(PRIMITIVE, [bind('object', ref)])
        else:
            element = Element(element_tag(node))

        # Animation and morph target bindings look nodes up by name
        if node.name and (options.keep_names or node.morph_target_dictionary or ctx.animated):
            element.attributes.append(Attribute('name', node.name))

        props = serialize_props(node, ctx)
        pruned = self.pruner.prune(node, children, props, silent)
        if pruned is not None:
            return pruned

        element.attributes.extend(props)
        element.children = children
        return [element]

    def _instanced_args(self, node):
        ref = self.ctx.node_ref(node)
        geometry = ref + '.geometry'
        if node.material.name:
            material = 'materials' + accessor(node.material.name)
        else:
            material = ref + '.material'
        count = str(node.count) if node.count else ref + '.count'
        return '[{}, {}, {}]'.format(geometry, material, count)

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    def prune_to_fixed_point(self, root, objects):
        """
        Alternate dry-run compiles and structural rewrites until a dry run
        removes nothing new.

        Returns:
            int: Total number of nodes marked removed.
        """
        total = 0
        while True:
            before = sum(1 for n in objects if n.removed)
            self.compile_node(root)
            newly = sum(1 for n in objects if n.removed) - before
            if newly == 0:
                break
            total += newly
            detached = reparent_removed(objects, root)
            log.debug("Pruning pass removed %d nodes, detached %d", newly, detached)
        return total
