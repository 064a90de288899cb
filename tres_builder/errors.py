"""
Errors and warnings raised by the compiler.

Fatal problems raise a ``CompileError`` subclass and abort the whole
compilation.  Recoverable problems are recorded as ``CompileWarning``
entries on the result.
"""


class CompileError(Exception):
    """Base class for fatal compilation errors."""

    def __init__(self, message, node=None):
        self.node_name = node.name if node is not None else None
        self.node_id = node.uuid if node is not None else None
        if node is not None:
            message = "{} (node {!r}, id {})".format(message, node.label(), node.uuid)
        super(CompileError, self).__init__(message)


class MalformedGraphError(CompileError):
    """A geometry or material identity is missing where it is required."""


class DuplicateNameError(CompileError):
    """No unique display name could be assigned to a duplicate geometry."""


class TraversalError(CompileError):
    """An unexpected exception escaped while compiling a node."""

    def __init__(self, node, cause):
        self.node_path = node.path()
        self.cause = cause
        super(TraversalError, self).__init__(
            "Failed to compile {}: {}: {}".format(
                self.node_path, type(cause).__name__, cause),
            node,
        )


class CompileWarning(object):
    """Non-fatal degradation attached to the compilation result."""

    def __init__(self, code, message, node=None):
        """
        Args:
            code: Stable identifier, e.g. 'META-001'.
            message: Human readable description.
            node: Optional SceneNode the warning refers to.
        """
        self.code = code
        self.message = message
        self.node_name = node.name if node is not None else None
        self.node_id = node.uuid if node is not None else None

    def __repr__(self):
        return "CompileWarning({}, {!r})".format(self.code, self.message)

    def __str__(self):
        return "{}: {}".format(self.code, self.message)
