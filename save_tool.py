#!/usr/bin/env python3
"""
Save Tool - Decode, inspect and round-trip save files
=====================================================

Decodes a save file with a record schema and optionally dumps it as a text
tree, exports it to JSON, or checks that re-encoding reproduces the file
byte for byte.

The schema is any SaveData subclass importable as ``module:Class``.

Usage:
------
    python save_tool.py SAVE.pcsav --schema my_game.schema:SaveGame --dump
    python save_tool.py SAVE.pcsav --schema my_game.schema:SaveGame --json save.json
    python save_tool.py SAVE.pcsav --schema my_game.schema:SaveGame --verify
"""

import argparse
import importlib
import json
import logging
import os
import sys
from typing import Optional, Type

from save_data import SaveData, SaveDataError, StringPolicy
from save_ui import DictExportUi, TextDumpUi


# =============================================================================
# HELPERS
# =============================================================================

def load_schema(spec: str) -> Type[SaveData]:
    """
    Import a schema class from a ``module:Class`` reference.

    The current directory is searched too, so a schema module sitting next to
    the save file loads when the tool runs as an installed script.

    Args:
        spec: Module path and attribute separated by a colon.

    Returns:
        The SaveData subclass.

    Raises:
        ValueError: Malformed reference or the attribute is not a SaveData type.
    """
    module_name, sep, attr = spec.partition(':')
    if not sep or not module_name or not attr:
        raise ValueError(f"Schema must be given as module:Class, got {spec!r}")

    cwd = os.getcwd()
    if cwd not in sys.path and '' not in sys.path:
        sys.path.insert(0, cwd)

    module = importlib.import_module(module_name)
    schema = module
    for part in attr.split('.'):
        schema = getattr(schema, part)

    if not (isinstance(schema, type) and issubclass(schema, SaveData)):
        raise ValueError(f"{spec} is not a SaveData type")
    return schema


def verify_roundtrip(original: bytes, rebuilt: bytes) -> bool:
    """
    Compare original and re-encoded buffers and report the result.

    Args:
        original: Bytes read from disk.
        rebuilt: Bytes produced by encoding the decoded tree.

    Returns:
        True if buffers match exactly, False otherwise.
    """
    if original == rebuilt:
        print("Round-trip verification: PASSED")
        return True

    print("Round-trip verification: FAILED")
    print(f"  Original: {len(original)} bytes")
    print(f"  Rebuilt:  {len(rebuilt)} bytes")

    # Find and report first difference
    for i in range(min(len(original), len(rebuilt))):
        if original[i] != rebuilt[i]:
            print(f"  First diff at 0x{i:04X}: orig=0x{original[i]:02X}, rebuilt=0x{rebuilt[i]:02X}")
            break
    else:
        print(f"  Buffers diverge at 0x{min(len(original), len(rebuilt)):04X} (length mismatch)")

    return False


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def main(argv: Optional[list] = None) -> int:
    """Command-line interface for the save codec."""
    parser = argparse.ArgumentParser(
        description='Decode, dump and round-trip game save files',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python save_tool.py SAVE.pcsav --schema my_game.schema:SaveGame --dump
  python save_tool.py SAVE.pcsav --schema my_game.schema:SaveGame --json out.json
  python save_tool.py SAVE.pcsav --schema my_game.schema:SaveGame --verify
"""
    )
    parser.add_argument('savefile', help='Save file to decode')
    parser.add_argument('--schema', '-s', required=True,
                        help='Root schema as module:Class')
    parser.add_argument('--dump', '-d', action='store_true',
                        help='Print the decoded tree')
    parser.add_argument('--json', '-j', metavar='OUT',
                        help='Write the decoded tree as JSON')
    parser.add_argument('--verify', action='store_true',
                        help='Re-encode and compare with the input byte for byte')
    parser.add_argument('--allow-trailing', action='store_true',
                        help='Ignore bytes left after the root schema (the re-encoded file drops them)')
    parser.add_argument('--string-policy', choices=[p.value for p in StringPolicy],
                        default=StringPolicy.PRESERVE.value,
                        help='Encoding choice for strings when re-encoding')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable debug logging')

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="[%(levelname)s] %(name)s: %(message)s")

    if not os.path.exists(args.savefile):
        print(f"Error: File not found: {args.savefile}")
        return 1

    try:
        schema = load_schema(args.schema)
    except (ImportError, AttributeError, ValueError) as e:
        print(f"Error: Could not load schema {args.schema}: {e}")
        return 1

    with open(args.savefile, 'rb') as f:
        data = f.read()

    print("=" * 70)
    print(f"Save Tool - {schema.__name__}")
    print("=" * 70)
    print(f"File: {args.savefile}")
    print(f"Size: {len(data):,} bytes (0x{len(data):X})")
    print()

    try:
        root = schema.from_bytes(data, strict=not args.allow_trailing)
    except SaveDataError as e:
        print(f"Error decoding save file: {e}")
        return 1

    print(f"Decoded {schema.__name__}: OK")

    if args.dump:
        print()
        print(TextDumpUi().render(root, schema.__name__))
        print()

    if args.json:
        with open(args.json, 'w', encoding='utf-8') as f:
            json.dump(DictExportUi().export(root), f, indent=2, ensure_ascii=False,
                      allow_nan=False)
        print(f"Output: {args.json}")

    if args.verify:
        try:
            rebuilt = root.to_bytes(StringPolicy(args.string_policy))
        except SaveDataError as e:
            print(f"Error encoding save file: {e}")
            return 1
        if not verify_roundtrip(data, rebuilt):
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
