"""
Fix-ups for unlit glTF materials.

three.js loads ``KHR_materials_unlit`` materials as MeshBasicMaterial and
ignores their emissive texture, which exporters use to carry the visible
colour.  When such materials are present the generated component resets
their colour to white and, where only an emissive texture exists, loads it
into the colour map.  This reads the raw glTF JSON, not the scene graph.
"""

import logging

from .naming import accessor, safe_identifier

log = logging.getLogger(__name__)

UNLIT_EXTENSION = 'KHR_materials_unlit'


class MaterialFixup(object):
    """One unlit material handled by the fix-up block."""

    def __init__(self, material_name, action, image_uri=None):
        """
        Args:
            material_name: glTF material name.
            action: 'color' (colour reset only) or 'emissive-map'.
            image_uri: Texture image loaded for 'emissive-map'.
        """
        self.material_name = material_name
        self.action = action
        self.image_uri = image_uri

    def __repr__(self):
        return "MaterialFixup({!r}, {})".format(self.material_name, self.action)


class MaterialFixups(object):
    """Fix-up records plus the script lines implementing them."""

    def __init__(self, fixups=None, lines=None):
        self.fixups = fixups or []
        self.lines = lines or []

    @property
    def needs_texture_loader(self):
        return bool(self.lines)

    @property
    def code(self):
        return '\n'.join(self.lines)


def _is_unlit(material):
    return UNLIT_EXTENSION in (material.get('extensions') or {})


def collect_material_fixups(gltf_json, url):
    """
    Build the unlit material fix-ups for a model.

    Args:
        gltf_json: Parsed glTF JSON dict, or None.
        url: URL the model is loaded from; texture paths are resolved
            relative to its directory.

    Returns:
        MaterialFixups: Empty when no unlit material has an emissive texture.
    """
    if not gltf_json or UNLIT_EXTENSION not in (gltf_json.get('extensionsUsed') or []):
        return MaterialFixups()

    materials = gltf_json.get('materials') or []
    if not any(_is_unlit(m) and 'emissiveTexture' in m for m in materials):
        return MaterialFixups()

    images = gltf_json.get('images') or []
    textures = gltf_json.get('textures') or []
    directory = url[:url.rfind('/') + 1]

    fixups = []
    lines = [
        '// Fix unlit materials: apply emissive textures to the base color',
        'const textureLoader = new TextureLoader()',
    ]
    for material in materials:
        if not _is_unlit(material):
            continue
        name = material.get('name', '')
        target = 'materials' + accessor(name)
        pbr = material.get('pbrMetallicRoughness') or {}

        if 'baseColorTexture' in pbr:
            lines.append('{}.color.setRGB(1, 1, 1)'.format(target))
            fixups.append(MaterialFixup(name, 'color'))
        elif 'emissiveTexture' in material and images:
            lines.append('{}.color.setRGB(1, 1, 1)'.format(target))
            texture_index = material['emissiveTexture'].get('index')
            source = None
            if texture_index is not None and texture_index < len(textures):
                source = textures[texture_index].get('source')
            uri = None
            if source is not None and source < len(images):
                uri = images[source].get('uri')
            if uri:
                var = safe_identifier(name) + '_map'
                lines.append("const {} = textureLoader.load('{}{}')".format(var, directory, uri))
                lines.append('{}.flipY = false'.format(var))
                lines.append('{}.map = {}'.format(target, var))
                fixups.append(MaterialFixup(name, 'emissive-map', uri))
            else:
                fixups.append(MaterialFixup(name, 'color'))

    lines.append('')
    lines.append('// Mark materials as needing update')
    lines.append('Object.values(materials).forEach((mat) => (mat.needsUpdate = true))')

    log.info("Unlit material fix-ups: %d material(s)", len(fixups))
    return MaterialFixups(fixups, lines)
