#!/usr/bin/env python3
"""
CLI for the ShapeScript evaluator.

Programs are read as JSON documents (see shapescript.dsl.serialization).

Usage:
    python -m shapescript check PROGRAM.json
    python -m shapescript run PROGRAM.json [--base-dir DIR] [--font NAME ...] [--output FILE]

Examples:
    # Check that a program document decodes
    python -m shapescript check scene.json

    # Evaluate and print a summary of the scene
    python -m shapescript run scene.json

    # Evaluate and write the scene as JSON, resolving imports next to scene.json
    python -m shapescript run scene.json --output scene.out.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

from .dsl import FileDelegate, Program, ScriptError, evaluate, program_from_dict
from .geometry import Geometry


def load_program(path: Path) -> Tuple[Optional[Program], int]:
    """Read and decode a program document, printing any failure."""
    if not path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        return None, 1
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return program_from_dict(data), 0
    except (OSError, ValueError) as e:
        print(f"Error: {path.name}: {e}", file=sys.stderr)
        return None, 1


def describe(node: Geometry, indent: int = 0) -> None:
    label = node.type.value
    if node.name:
        label += f" '{node.name}'"
    print("  " * indent + label)
    for child in node.children:
        describe(child, indent + 1)


def cmd_check(args):
    """Check that a program document is well-formed."""
    program, status = load_program(Path(args.file))
    if program is None:
        return status
    print(f"OK: {Path(args.file).name} - {len(program.statements)} statement(s)")
    return 0


def cmd_run(args):
    """Evaluate a program and report or export the scene."""
    source_path = Path(args.file)
    program, status = load_program(source_path)
    if program is None:
        return status

    base_dir = Path(args.base_dir) if args.base_dir else source_path.parent
    delegate = FileDelegate(base_dir, fonts=args.font)
    try:
        scene = evaluate(program, delegate=delegate)
    except ScriptError as error:
        print(error.format(program.source, filename=source_path.name), file=sys.stderr)
        return 1

    if args.output:
        output_path = Path(args.output)
        output_path.write_text(json.dumps(scene.to_dict(), indent=2), encoding="utf-8")
        print(f"Wrote: {output_path}")
        return 0

    print(f"Scene: {len(scene.children)} node(s)")
    for child in scene.children:
        describe(child, 1)
    for url in delegate.linked_resources:
        print(f"Linked: {url}")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='python -m shapescript',
        description='ShapeScript evaluator',
    )
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='action', required=True)

    # check command
    check_parser = subparsers.add_parser('check', help='Check a program document')
    check_parser.add_argument('file', help='Program JSON file')

    # run command
    run_parser = subparsers.add_parser('run', help='Evaluate a program')
    run_parser.add_argument('file', help='Program JSON file')
    run_parser.add_argument('--base-dir', metavar='DIR',
                            help='Directory that relative imports resolve against')
    run_parser.add_argument('--font', action='append', metavar='NAME',
                            help='Available font name (can be repeated)')
    run_parser.add_argument('-o', '--output', metavar='FILE',
                            help='Write the scene as JSON')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    if args.action == 'check':
        return cmd_check(args)
    elif args.action == 'run':
        return cmd_run(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
