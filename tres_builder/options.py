"""
Compilation options.

``CompileOptions`` is an immutable record.  ``from_dict`` accepts both the
Python field names and the camelCase names used by the JavaScript tooling, so option dicts coming
from JSON config files can be passed through unchanged.
"""

from collections import namedtuple
from enum import Enum


class InstancingMode(Enum):
    """How repeated (geometry, material) pairs are emitted."""
    NONE = "none"       # every mesh is emitted as a plain element
    SPARSE = "sparse"   # pairs that occur at least twice become instances
    ALL = "all"         # every mesh becomes an instance reference


_FIELDS = (
    'precision',
    'instancing',
    'keep_groups',
    'keep_bones',
    'keep_names',
    'shadows',
    'meta',
    'debug',
    'file_name',
    'header',
    'size',
)

_DEFAULTS = (
    2,                      # precision
    InstancingMode.NONE,    # instancing
    False,                  # keep_groups
    False,                  # keep_bones
    False,                  # keep_names
    False,                  # shadows
    False,                  # meta
    False,                  # debug
    'model',                # file_name
    None,                   # header
    None,                   # size
)

_ALIASES = {
    'instancingMode': 'instancing',
    'keepGroups': 'keep_groups',
    'keepgroups': 'keep_groups',
    'keepBonesVerbatim': 'keep_bones',
    'bones': 'keep_bones',
    'keepExplicitNames': 'keep_names',
    'keepnames': 'keep_names',
    'emitShadowAttributes': 'shadows',
    'emitUserMetadata': 'meta',
    'debugTrace': 'debug',
    'fileName': 'file_name',
}


class CompileOptions(namedtuple('CompileOptions', _FIELDS, defaults=_DEFAULTS)):
    """
    Immutable compilation options.

    Fields:
        precision: Decimal digits kept for numbers (default 2).
        instancing: InstancingMode (default NONE).
        keep_groups: Keep the original group hierarchy, disabling
            flattening and pruning.
        keep_bones: Emit bones with their properties and children instead
            of a bare primitive reference.
        keep_names: Always emit the ``name`` attribute.
        shadows: Add cast/receive shadow flags to every mesh.
        meta: Emit node user data as a ``user-data`` attribute.
        debug: Log the input tree and every pruning decision.
        file_name: Model file name, used to build the loading URL.
        header: Provenance text for the header comment.
        size: Human readable file size for the header comment.
    """
    __slots__ = ()

    def __new__(cls, *args, **kwargs):
        self = super(CompileOptions, cls).__new__(cls, *args, **kwargs)
        if not isinstance(self.instancing, InstancingMode):
            self = self._replace(instancing=InstancingMode(self.instancing))
        if self.precision is None or self.precision < 0:
            raise ValueError("precision must be a non-negative number, got {!r}".format(
                self.precision))
        return self

    @classmethod
    def from_dict(cls, options):
        """
        Build options from a mapping with Python or camelCase keys.

        Raises:
            ValueError: On unknown keys or invalid values.
        """
        kwargs = {}
        for key, value in (options or {}).items():
            field = _ALIASES.get(key, key)
            if field not in _FIELDS:
                raise ValueError("Unknown compile option: {}".format(key))
            kwargs[field] = value
        return cls(**kwargs)

    @property
    def url(self):
        """URL the generated component loads the model from."""
        prefix = '' if self.file_name.lower().startswith('http') else '/'
        return prefix + self.file_name

    @property
    def instancing_enabled(self):
        return self.instancing != InstancingMode.NONE
