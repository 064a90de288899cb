"""
Assembly of the generated Vue single-file component.

Renders the Jinja2 templates under ``templates/tres``: the component itself
(header comment, script setup block, template) and the TypeScript
declaration describing the loaded model.
"""

import json
import os
import logging

try:
    from jinja2 import Environment, FileSystemLoader
except ImportError:
    raise ImportError(
        "Jinja2 is required for component generation. "
        "Install it with: pip install jinja2"
    )

from .material_fixups import MaterialFixups
from .naming import property_key

log = logging.getLogger(__name__)

DEFAULT_HEADER = 'Auto-generated by: tres_builder'


def _extras_lines(extras):
    lines = []
    for key, value in (extras or {}).items():
        if isinstance(value, (dict, list)):
            value = json.dumps(value, ensure_ascii=False)
        lines.append('{}: {}'.format(key[:1].upper() + key[1:], value))
    return lines


def _strip_trailing_whitespace(text):
    return '\n'.join(line.rstrip() for line in text.split('\n'))


class ComponentWriter(object):
    """Renders component and type declaration text."""

    def __init__(self):
        template_dir = os.path.join(os.path.dirname(__file__), 'templates', 'tres')
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            autoescape=False,
        )
        self.env.filters['key'] = property_key

    def header(self, options, provenance=None):
        """
        Header comment with provenance text.

        Args:
            options: CompileOptions (header / size fields).
            provenance: Optional dict of asset annotations, rendered as
                one 'Key: value' line each.
        """
        lines = ['/*', options.header or DEFAULT_HEADER]
        if options.size:
            lines.append('Files: {}'.format(options.size))
        lines.extend(_extras_lines(provenance))
        lines.append('*/')
        return '\n'.join(lines)

    def component(self, scene, options, animated=False, fixups=None,
                  instances=None, provenance=None):
        """
        Render the single-file component.

        Args:
            scene: Rendered markup of the compiled scene.
            options: CompileOptions.
            animated: True when the model has animation clips.
            fixups: MaterialFixups for unlit materials.
            instances: DuplicateRecord list to declare, or None.
            provenance: Asset annotation dict for the header.

        Returns:
            str: Component source text.
        """
        template = self.env.get_template('component.vue.jinja2')
        declared = []
        for rec in instances or []:
            declared.append({
                'key': property_key(rec.name),
                'tag': rec.tag,
                'node': rec.node,
                'material': rec.material,
            })
        text = template.render(
            header=self.header(options, provenance),
            url=options.url.replace("'", "\\'"),
            animated=animated,
            fixups=fixups or MaterialFixups(),
            instances=declared,
            scene=scene,
        )
        return _strip_trailing_whitespace(text)

    def types(self, descriptor):
        """Render the TypeScript declaration of a TypeDescriptor."""
        template = self.env.get_template('types.d.ts.jinja2')
        return _strip_trailing_whitespace(template.render(types=descriptor))
