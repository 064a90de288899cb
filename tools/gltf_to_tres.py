#!/usr/bin/env python
"""
glTF -> TresJS component converter.

Loads a .glb / .gltf model and writes a Vue single-file component that
rebuilds the scene with TresJS elements, optionally with a TypeScript
declaration of the model's nodes, materials and animations.

Usage:
  python gltf_to_tres.py <model.glb> [-o Model.vue] [--types Model.d.ts]
  python gltf_to_tres.py <model.glb> --instance --precision 3 --shadows > Model.vue
"""

import os
import sys
import logging
import argparse

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from tres_builder import convert_gltf, CompileError, InstancingMode


def _human_size(num_bytes):
    """Format a byte count the way the header comment shows it."""
    size = float(num_bytes)
    for unit in ('B', 'KB', 'MB', 'GB'):
        if size < 1000 or unit == 'GB':
            if unit == 'B':
                return '{}{}'.format(int(size), unit)
            return '{:.2f}{}'.format(size, unit)
        size /= 1000.0


def main():
    parser = argparse.ArgumentParser(
        description='Convert a glTF model into a TresJS Vue component')
    parser.add_argument('input', help='Input .glb / .gltf file')
    parser.add_argument('-o', '--output',
                        help='Output .vue file (default: stdout)')
    parser.add_argument('-t', '--types', metavar='PATH',
                        help='Also write the .d.ts type declaration to PATH')
    parser.add_argument('-p', '--precision', type=int, default=2,
                        help='Number of fractional digits (default: 2)')
    parser.add_argument('-i', '--instance', action='store_true',
                        help='Instance geometry that occurs more than once')
    parser.add_argument('-I', '--instanceall', action='store_true',
                        help='Instance every geometry')
    parser.add_argument('-k', '--keepnames', action='store_true',
                        help='Always emit node names')
    parser.add_argument('-K', '--keepgroups', action='store_true',
                        help='Keep empty and transform-only groups')
    parser.add_argument('-b', '--bones', action='store_true',
                        help='Lay out bones declaratively')
    parser.add_argument('-s', '--shadows', action='store_true',
                        help='Let meshes cast and receive shadows')
    parser.add_argument('-m', '--meta', action='store_true',
                        help='Include node user data')
    parser.add_argument('-D', '--debug', action='store_true',
                        help='Log the input tree and pruning decisions')
    parser.add_argument('--header', help='Text for the header comment')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Verbose logging')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else (
            logging.INFO if args.debug else logging.WARNING),
        format='%(levelname)s %(name)s: %(message)s')

    if args.instanceall:
        instancing = InstancingMode.ALL
    elif args.instance:
        instancing = InstancingMode.SPARSE
    else:
        instancing = InstancingMode.NONE

    try:
        result = convert_gltf(
            args.input,
            precision=args.precision,
            instancing=instancing,
            keep_groups=args.keepgroups,
            keep_bones=args.bones,
            keep_names=args.keepnames,
            shadows=args.shadows,
            meta=args.meta,
            debug=args.debug,
            file_name=os.path.basename(args.input),
            header=args.header,
            size=_human_size(os.path.getsize(args.input)),
        )
    except (CompileError, ValueError, FileNotFoundError) as e:
        print("ERROR: {}".format(e), file=sys.stderr)
        sys.exit(1)

    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            f.write(result.text)
        print("{} -> {}".format(args.input, args.output), file=sys.stderr)
    else:
        sys.stdout.write(result.text)

    if args.types:
        with open(args.types, 'w', encoding='utf-8') as f:
            f.write(result.types_text)
        print("{} -> {}".format(args.input, args.types), file=sys.stderr)

    for warning in result.warnings:
        print("WARNING: {}".format(warning), file=sys.stderr)


if __name__ == '__main__':
    main()
