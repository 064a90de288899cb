"""
State threaded through one compilation.
"""

import logging

from .errors import CompileWarning
from .naming import accessor

log = logging.getLogger(__name__)


class CompileContext(object):
    """
    Options, duplicate tables and collected warnings of one compile call.

    Args:
        options: CompileOptions.
        index: GraphIndex built from the scene root.
        animations: List of AnimationClip.
    """

    def __init__(self, options, index, animations=()):
        self.options = options
        self.index = index
        self.animations = list(animations)
        self.warnings = []
        self._warned = set()

    @property
    def animated(self):
        return len(self.animations) > 0

    def instance_record(self, node):
        return self.index.instance_record(node)

    @staticmethod
    def node_ref(node):
        return 'nodes' + accessor(node.name)

    def warn(self, code, message, node=None):
        """Record a warning once per (code, node)."""
        key = (code, node.uuid if node is not None else None)
        if key in self._warned:
            return
        self._warned.add(key)
        self.warnings.append(CompileWarning(code, message, node))
        log.warning("%s: %s", code, message)
