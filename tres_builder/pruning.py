"""
Removal of structurally redundant group nodes.

``PruningEngine.prune`` is consulted by the emitter for every group-like
node after its children have been compiled.  When a rule applies it marks
nodes as removed (and, for some rules, moves a transform onto the child)
and returns the markup that replaces the group.

Rules, first match wins:

    empty / no-op group
        <group>
          <mesh />                      ->  <mesh />

    double negative rotation
        <group rotation=[-a, 0, 0]>
          <group rotation=[a, 0, 0]>
            <mesh />                    ->  <mesh />

    double negative rotation with props
        <group rotation=[-a, 0, 0]>
          <group rotation=[a, 0, 0] scale=2>
            <mesh />                    ->  <group scale=2><mesh /></group>

    transform overlap
        <group position=[1, 0, 0]>
          <mesh />                      ->  <mesh position=[1, 0, 0] />

    lack of content
        <group><group /></group>        ->  (nothing)

``reparent_removed`` then rewrites the tree so removed nodes disappear and
their surviving children move to the nearest kept ancestor.
"""

import logging

from .props import serialize_props, TRANSFORM_ATTRIBUTES

log = logging.getLogger(__name__)


def equal_or_negated(a, b):
    return all(x == y or x == -y for x, y in zip(a, b))


class PruningEngine(object):
    """
    Args:
        ctx: CompileContext.
        compile_node: Callable ``(node, silent) -> list[Element]`` used to
            recompile a child after a rule modified it.
    """

    def __init__(self, ctx, compile_node):
        self.ctx = ctx
        self.compile_node = compile_node

    def _trace(self, silent, node, reason):
        if self.ctx.options.debug and not silent:
            log.info("group %s removed (%s)", node.name, reason)

    def applies_to(self, node):
        return (not node.removed and node.is_group and
                not self.ctx.options.keep_groups and not self.ctx.animated)

    def prune(self, node, children, props, silent=False):
        """
        Try every rule on ``node``.

        Args:
            node: Group-like SceneNode being compiled.
            children: Already compiled markup of its children.
            props: Attributes serialised for the node itself.
            silent: Suppress debug tracing (used for recompiles).

        Returns:
            list[Element] replacing the node, or None if it is kept.
        """
        if not self.applies_to(node):
            return None

        if not props or not node.children:
            self._trace(silent, node, 'empty')
            node.removed = True
            return children

        first = node.children[0]
        keys = [a.name for a in props]
        child_keys = [a.name for a in serialize_props(first, self.ctx)]
        single = len(node.children) == 1

        cancels = (single and not first.removed and first.kind == node.kind and
                   equal_or_negated(node.rotation, first.rotation))

        if cancels and keys == ['rotation'] and child_keys == ['rotation']:
            self._trace(silent, node, 'aggressive: double negative rotation')
            node.removed = first.removed = True
            result = []
            for grandchild in first.children:
                result.extend(self.compile_node(grandchild, True))
            return result

        if cancels and keys == ['rotation'] and len(child_keys) > 1 \
                and 'rotation' in child_keys:
            self._trace(silent, node, 'aggressive: double negative rotation w/ props')
            node.removed = True
            first.rotation = [0.0, 0.0, 0.0]
            return self.compile_node(first, True)

        child_transformed = any(k in TRANSFORM_ATTRIBUTES for k in child_keys)
        other_props = any(k not in TRANSFORM_ATTRIBUTES for k in keys)
        if single and not first.removed and not child_transformed and not other_props:
            self._trace(silent, node, 'aggressive: {} overlap'.format(' '.join(keys)))
            for key in keys:
                setattr(first, key, list(getattr(node, key)))
            result = self.compile_node(first, True)
            node.removed = True
            return result

        subtree = list(node.traverse())
        if not any(not n.is_group for n in subtree):
            self._trace(silent, node, 'aggressive: lack of content')
            for n in subtree:
                n.removed = True
            return []

        return None


def reparent_removed(objects, root):
    """
    Detach every removed node, moving its children up.

    Children are inserted where the removed node sat in its nearest kept
    ancestor, so document order is preserved.  A removed root stays in
    place (it has no parent to hand its children to).

    Args:
        objects: Nodes in pre-order (the GraphIndex list).
        root: Scene root.

    Returns:
        int: Number of nodes detached.
    """
    for node in objects:
        if not node.removed or node is root:
            continue
        anchor = node
        parent = node.parent
        while parent is not None and parent.removed and parent is not root:
            anchor = parent
            parent = parent.parent
        if parent is None:
            parent = root
            anchor = None
        for child in list(node.children):
            if anchor is not None and anchor.parent is parent:
                parent.insert_before(child, anchor)
            else:
                parent.add(child)

    detached = 0
    for node in objects:
        if node.removed and node is not root and node.parent is not None:
            node.parent.remove(node)
            detached += 1
    return detached
