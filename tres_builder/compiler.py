"""
Scene graph to TresJS component compiler.

Pipeline for one call:

    1. GraphIndex       - node list, material counts, duplicate geometries
    2. flatten          - bake inherited transforms into meshes (unless
                          keep_groups)
    3. prune            - dry-run compiles + structural rewrites until no
                          group can be removed (unless keep_groups)
    4. final compile    - markup tree of the rewritten graph
    5. types / fix-ups  - type declaration and unlit material block
    6. assembly         - header, script and template text

The graph passed in is modified in place (flattening, pruning); callers
that need the original afterwards must hand in a copy.

Usage:
    from tres_builder import SceneCompiler, CompileOptions

    compiler = SceneCompiler(CompileOptions(precision=3))
    output = compiler.compile(scene, animations)
    print(output.text)
"""

import logging
import time

from .component_writer import ComponentWriter
from .context import CompileContext
from .emitter import MarkupEmitter
from .flattener import flatten_transforms
from .graph_indexer import GraphIndex
from .markup import render
from .material_fixups import collect_material_fixups
from .numeric import fmt
from .options import CompileOptions
from .type_descriptor import describe_types

log = logging.getLogger(__name__)

# Markup sits inside <template><TresGroup>
_SCENE_INDENT = 4


class CompiledOutput(object):
    """
    Result of one compilation.

    Attributes:
        markup: list[Element] of the compiled scene.
        scene: Rendered markup text.
        text: Complete component source (header + script + template).
        types: TypeDescriptor of the model.
        types_text: TypeScript declaration text.
        material_fixups: list[MaterialFixup] for unlit materials.
        warnings: list[CompileWarning] of non-fatal degradations.
    """

    def __init__(self, markup, scene, text, types, types_text,
                 material_fixups, warnings):
        self.markup = markup
        self.scene = scene
        self.text = text
        self.types = types
        self.types_text = types_text
        self.material_fixups = material_fixups
        self.warnings = warnings

    def __repr__(self):
        return "CompiledOutput({} chars, {} warnings)".format(
            len(self.text), len(self.warnings))


class SceneCompiler(object):
    """
    Compiles scene graphs with a fixed set of options.

    Args:
        options: CompileOptions, a dict accepted by CompileOptions.from_dict,
            or None for defaults.
        formatter: Optional callable applied to the component text.
    """

    def __init__(self, options=None, formatter=None):
        if options is None:
            options = CompileOptions()
        elif isinstance(options, dict):
            options = CompileOptions.from_dict(options)
        self.options = options
        self.formatter = formatter
        self.writer = ComponentWriter()

    def compile(self, scene, animations=None, gltf_json=None, provenance=None):
        """
        Compile a scene graph into a component.

        Args:
            scene: Root SceneNode.  Modified in place.
            animations: Optional list of AnimationClip.
            gltf_json: Optional raw glTF JSON dict (unlit material fix-ups,
                asset extras).
            provenance: Optional dict for the header comment; defaults to
                ``asset.extras`` of ``gltf_json``.

        Returns:
            CompiledOutput

        Raises:
            MalformedGraphError: Missing geometry or material identity.
            TraversalError: Unexpected failure while compiling a node.
        """
        options = self.options
        animations = list(animations or [])
        start_time = time.time()

        index = GraphIndex(scene, options.instancing)
        ctx = CompileContext(options, index, animations)
        log.info("Compiling %d nodes (%d shared geometries, %d animations)",
                 len(index.objects), len(index.geometries), len(animations))

        if options.debug:
            _dump_tree(scene, 0, options.precision)

        emitter = MarkupEmitter(ctx)
        if not options.keep_groups:
            flatten_transforms(scene, index.objects)
            removed = emitter.prune_to_fixed_point(scene, index.objects)
            log.info("Pruned %d redundant nodes", removed)

        markup = emitter.compile_node(scene)
        scene_text = render(markup, indent=_SCENE_INDENT)

        types = describe_types(index.objects, animations, index)
        types_text = self.writer.types(types)

        fixups = collect_material_fixups(gltf_json, options.url)
        if provenance is None and gltf_json:
            provenance = (gltf_json.get('asset') or {}).get('extras')

        instances = index.instances() or None

        text = self.writer.component(
            scene_text, options,
            animated=ctx.animated,
            fixups=fixups,
            instances=instances,
            provenance=provenance,
        )
        if self.formatter is not None:
            text = self.formatter(text)

        log.info("Generated component: %d chars in %.3fs, %d warning(s)",
                 len(text), time.time() - start_time, len(ctx.warnings))

        return CompiledOutput(
            markup=markup,
            scene=scene_text,
            text=text,
            types=types,
            types_text=types_text,
            material_fixups=fixups.fixups,
            warnings=ctx.warnings,
        )


def _dump_tree(node, depth, precision):
    """Log one line per node: type, name, transform, geometry and material."""
    geometry = ''
    if node.geometry is not None:
        geometry = '{}v {}i'.format(node.geometry.vertex_count, node.geometry.index_count)
    material = ''
    if node.material is not None:
        material = '{}-{}'.format(node.material.name, node.material.uuid[:8])
        if node.material.color:
            material += ' #' + node.material.color
    log.info("%s%s %s pos: %s scale: %s rot: %s geo: %s mat: %s",
             '  ' * depth, node.type, node.name,
             [fmt(v, precision) for v in node.position],
             [fmt(v, precision) for v in node.scale],
             [fmt(v, precision) for v in node.rotation],
             geometry, material)
    for child in node.children:
        _dump_tree(child, depth + 1, precision)
