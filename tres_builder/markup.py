"""
Markup tree built by the emitter and its text renderer.

The emitter never concatenates strings: it builds ``Element`` nodes with
ordered ``Attribute`` records, and ``render`` turns the tree into template
text in one place.
"""

_ENTITIES = {'"': '&quot;', "'": '&#39;'}


class Attribute(object):
    """
    One element attribute.

    Args:
        name: kebab-case attribute name.
        value: Attribute value, or None for a boolean flag.
        bound: True for a Vue binding (``:name="expr"``).
        quote: Quote character used when rendering.
    """

    def __init__(self, name, value=None, bound=False, quote='"'):
        self.name = name
        self.value = value
        self.bound = bound
        self.quote = quote

    def __repr__(self):
        return "Attribute({!r}, {!r})".format(self.name, self.value)

    def __eq__(self, other):
        return (isinstance(other, Attribute) and
                (self.name, self.value, self.bound) == (other.name, other.value, other.bound))

    def __hash__(self):
        return hash((self.name, self.value, self.bound))

    def render(self):
        if self.value is None:
            return self.name
        value = self.value.replace(self.quote, _ENTITIES[self.quote])
        return '{}{}={q}{}{q}'.format(':' if self.bound else '', self.name, value,
                                      q=self.quote)


def bind(name, value):
    return Attribute(name, value, bound=True)


class Element(object):
    """A template element with ordered attributes and child elements."""

    def __init__(self, tag, attributes=None, children=None):
        self.tag = tag
        self.attributes = list(attributes or [])
        self.children = list(children or [])

    def __repr__(self):
        return "Element({!r}, {} attrs, {} children)".format(
            self.tag, len(self.attributes), len(self.children))

    def attribute_names(self):
        return [a.name for a in self.attributes]

    def get(self, name):
        for attr in self.attributes:
            if attr.name == name:
                return attr
        return None


class InstancedRef(Element):
    """Element emitted through a shared instance declaration."""

    def __init__(self, record, attributes=None, children=None):
        super(InstancedRef, self).__init__(
            'instances.' + record.name, attributes, children)
        self.record = record


def render(elements, indent=0, step=2):
    """
    Render a list of elements as indented template text.

    Returns:
        str: One element per line, no trailing whitespace, no final newline.
    """
    lines = []
    for element in elements:
        _render_element(element, indent, step, lines)
    return '\n'.join(lines)


def _render_element(element, indent, step, lines):
    pad = ' ' * indent
    opening = ' '.join([element.tag] + [a.render() for a in element.attributes])
    if not element.children:
        lines.append('{}<{} />'.format(pad, opening))
        return
    lines.append('{}<{}>'.format(pad, opening))
    for child in element.children:
        _render_element(child, indent + step, step, lines)
    lines.append('{}</{}>'.format(pad, element.tag))


def walk(elements):
    """Yield every element of a markup tree in document order."""
    for element in elements:
        yield element
        for child in walk(element.children):
            yield child
