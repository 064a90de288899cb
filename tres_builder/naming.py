"""
Identifier helpers for the generated script and template.

Node and material names come straight from authoring tools and may contain
spaces, punctuation or reserved words.  Names that are valid JavaScript
identifiers are addressed with dot access, anything else with a quoted
bracket accessor.
"""

import re

_RESERVED_WORDS = frozenset("""
    do if in for let new try var case else enum eval null this true void with
    await break catch class const false super throw while yield delete export
    import public return static switch typeof default extends finally package
    private continue debugger function arguments interface protected
    implements instanceof
""".split())

_NON_LETTERS = re.compile(r'[^a-zA-Z]')
_NON_ALPHANUMERIC = re.compile(r'[^a-zA-Z0-9]')


def is_var_name(name):
    """
    Return True if ``name`` can be used as a bare JavaScript property name.

    Examples:
        is_var_name("Body")      -> True
        is_var_name("$mesh_01")  -> True
        is_var_name("My Part")   -> False
        is_var_name("class")     -> False
        is_var_name("")          -> False
    """
    if not name or name in _RESERVED_WORDS:
        return False
    # '$' is the only identifier character JavaScript allows and Python doesn't
    return name.replace('$', '_').isidentifier()


def accessor(name):
    """Return ``.name`` or ``['name']`` for appending to an object expression."""
    if is_var_name(name):
        return '.' + name
    escaped = name.replace('\\', '\\\\').replace("'", "\\'")
    return "['{}']".format(escaped)


def property_key(name):
    """Object literal / type literal key for ``name``."""
    if is_var_name(name):
        return name
    return "'{}'".format(name.replace('\\', '\\\\').replace("'", "\\'"))


def component_name(name, default='Part'):
    """
    Derive a PascalCase component name from a node name.

    Non-letters are stripped and the first letter is capitalised.  Falls
    back to ``default`` when nothing is left.
    """
    stripped = _NON_LETTERS.sub('', name or '')
    if not stripped:
        stripped = default
    return stripped[0].upper() + stripped[1:]


def safe_identifier(name):
    """Replace every non-alphanumeric character with an underscore."""
    return _NON_ALPHANUMERIC.sub('_', name)
