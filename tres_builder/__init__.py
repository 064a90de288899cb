"""
tres_builder - glTF scene graph to TresJS component compiler

Turns a loaded 3D scene graph into the source of a Vue single-file
component that rebuilds the scene with TresJS elements.  Repeated
geometry can be shared through instance declarations, inherited
transforms are flattened and redundant wrapper groups are pruned so the
generated markup stays short and readable.
"""

from .options import CompileOptions, InstancingMode
from .errors import (CompileError, MalformedGraphError, DuplicateNameError,
                     TraversalError, CompileWarning)
from .scene_graph import SceneNode, Geometry, Material, AnimationClip
from .naming import is_var_name, accessor
from .numeric import round_number, round_angle
from .graph_indexer import GraphIndex, DuplicateRecord
from .flattener import flatten_transforms
from .emitter import MarkupEmitter
from .type_descriptor import TypeDescriptor, describe_types
from .material_fixups import MaterialFixup, collect_material_fixups
from .compiler import SceneCompiler, CompiledOutput
from .gltf_loader import load_gltf, LoadedModel


def compile_scene(scene, animations=None, options=None, gltf_json=None,
                  formatter=None, **overrides):
    """
    Compile a scene graph into a TresJS component.

    Args:
        scene: Root SceneNode (modified in place).
        animations: Optional list of AnimationClip.
        options: CompileOptions or option dict.  Keyword ``overrides`` are
            merged on top.
        gltf_json: Optional raw glTF JSON for material fix-ups and the
            header's asset annotations.
        formatter: Optional callable applied to the component text.

    Returns:
        CompiledOutput
    """
    if options is None:
        options = CompileOptions()
    elif isinstance(options, dict):
        options = CompileOptions.from_dict(options)
    if overrides:
        merged = options._asdict()
        merged.update(overrides)
        options = CompileOptions.from_dict(merged)
    return SceneCompiler(options, formatter).compile(scene, animations, gltf_json)


def convert_gltf(source, options=None, formatter=None, **overrides):
    """
    Load a glTF model and compile it.

    Args:
        source: Path, bytes or parsed JSON accepted by ``load_gltf``.
        options: CompileOptions or option dict.
        formatter: Optional callable applied to the component text.

    Returns:
        CompiledOutput
    """
    model = load_gltf(source)
    return compile_scene(model.scene, model.animations, options,
                         gltf_json=model.json, formatter=formatter, **overrides)
