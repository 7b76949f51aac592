#!/usr/bin/env python3
"""
Save Data Front-End Hooks
=========================

Every decoded node exposes ``draw_raw_ui(ui, ident)``. The node picks the
widget it needs and calls back into the ``SaveUi`` it was given with itself,
so a front end edits values in place on the owned tree:

| Node          | Callback            |
|---------------|---------------------|
| Bool          | draw_edit_bool      |
| U8            | draw_edit_byte      |
| other ints    | draw_edit_int       |
| F32           | draw_edit_float     |
| SaveString    | draw_edit_string    |
| EnumU8/U32    | draw_edit_enum      |
| ByteArray     | draw_bytes          |
| Vec           | draw_vec            |
| IndexMap      | draw_indexmap       |
| BitArray      | draw_boolvec        |
| Record        | draw_struct         |
| Color         | draw_edit_color     |

Two front ends ship with the codec:

  - TextDumpUi: indented, read-only text tree (used by ``save_tool --dump``)
  - DictExportUi: nested dicts/lists ready for ``json.dump``
"""

import math
from typing import Any, Dict, List, Tuple

from save_data import (BitArray, Bool, ByteArray, Color, F32, IndexMap, SaveData, SaveEnum,
                       SaveString, Scalar, U8, Vec)


# =============================================================================
# HOOK CONTRACT
# =============================================================================

class SaveUi:
    """
    Callbacks a front end implements to display and edit a decoded tree.

    Leaf callbacks receive the node itself; an editor writes the new value
    through the node's ``set()`` so width and enum checks still apply.
    Composite callbacks receive their children and are expected to call
    ``child.draw_raw_ui(self, ident)`` for each one they show.
    """

    # Leaves
    def draw_edit_bool(self, ident: str, node: Bool):
        raise NotImplementedError

    def draw_edit_byte(self, ident: str, node: U8):
        raise NotImplementedError

    def draw_edit_int(self, ident: str, node: Scalar):
        raise NotImplementedError

    def draw_edit_float(self, ident: str, node: F32):
        raise NotImplementedError

    def draw_edit_string(self, ident: str, node: SaveString):
        raise NotImplementedError

    def draw_edit_enum(self, ident: str, node: SaveEnum):
        raise NotImplementedError

    def draw_bytes(self, ident: str, node: ByteArray):
        raise NotImplementedError

    def draw_edit_color(self, ident: str, node: Color):
        raise NotImplementedError

    # Composites
    def draw_struct(self, ident: str, fields: List[Tuple[str, SaveData]]):
        raise NotImplementedError

    def draw_vec(self, ident: str, items: Vec):
        raise NotImplementedError

    def draw_indexmap(self, ident: str, mapping: IndexMap):
        raise NotImplementedError

    def draw_boolvec(self, ident: str, bits: BitArray):
        raise NotImplementedError


# =============================================================================
# TEXT DUMP
# =============================================================================

class TextDumpUi(SaveUi):
    """Renders a tree as indented ``ident: value`` lines."""

    def __init__(self, indent: str = '  '):
        self.indent = indent
        self.lines: List[str] = []
        self._depth = 0

    def render(self, node: SaveData, ident: str = 'root') -> str:
        """
        Dump a whole tree.

        Args:
            node: Root node to draw.
            ident: Label for the root line.

        Returns:
            The dump as a single string.
        """
        self.lines = []
        self._depth = 0
        node.draw_raw_ui(self, ident)
        return '\n'.join(self.lines)

    def _line(self, ident: str, text: str = ''):
        prefix = self.indent * self._depth
        self.lines.append(f"{prefix}{ident}: {text}" if text else f"{prefix}{ident}:")

    def _note(self, text: str):
        self.lines.append(f"{self.indent * self._depth}{text}")

    def _children(self, children):
        self._depth += 1
        try:
            drawn = False
            for ident, child in children:
                child.draw_raw_ui(self, ident)
                drawn = True
            if not drawn:
                self._note('(empty)')
        finally:
            self._depth -= 1

    def draw_edit_bool(self, ident: str, node: Bool):
        self._line(ident, 'true' if node.value else 'false')

    def draw_edit_byte(self, ident: str, node: U8):
        self._line(ident, f"0x{node.value:02X}")

    def draw_edit_int(self, ident: str, node: Scalar):
        self._line(ident, str(node.value))

    def draw_edit_float(self, ident: str, node: F32):
        self._line(ident, f"{node.value:.6g}")

    def draw_edit_string(self, ident: str, node: SaveString):
        text = repr(node.value)
        if node.unicode:
            text += ' (utf-16)'
        self._line(ident, text)

    def draw_edit_enum(self, ident: str, node: SaveEnum):
        self._line(ident, f"{node.value.name} ({int(node.value)})")

    def draw_bytes(self, ident: str, node: ByteArray):
        self._line(ident, ' '.join(f'{b:02x}' for b in node.data) or '(empty)')

    def draw_edit_color(self, ident: str, node: Color):
        self._line(ident, 'rgba(' + ', '.join(f"{c:.6g}" for c in node.rgba()) + ')')

    def draw_struct(self, ident: str, fields: List[Tuple[str, SaveData]]):
        self._line(ident)
        self._children(fields)

    def draw_vec(self, ident: str, items: Vec):
        self._line(ident, f"[{len(items)}]")
        self._children((str(i), item) for i, item in enumerate(items))

    def draw_indexmap(self, ident: str, mapping: IndexMap):
        self._line(ident, f"{{{len(mapping)}}}")
        self._depth += 1
        try:
            if not mapping:
                self._note('(empty)')
            for i, (key, value) in enumerate(mapping.items()):
                self._line(str(i))
                self._children([('key', key), ('value', value)])
        finally:
            self._depth -= 1

    def draw_boolvec(self, ident: str, bits: BitArray):
        set_bits = [str(i) for i, flag in enumerate(bits) if flag]
        self._line(ident, f"{len(set_bits)}/{len(bits)} set")
        if set_bits:
            self._depth += 1
            self._line('set', ', '.join(set_bits))
            self._depth -= 1


# =============================================================================
# DICT EXPORT
# =============================================================================

def _json_float(value: float) -> Any:
    # JSON has no NaN or Infinity literals
    return value if math.isfinite(value) else repr(value)


class DictExportUi(SaveUi):
    """
    Converts a tree into plain dicts/lists/scalars.

    Records become dicts keyed by field name, Vecs become lists, IndexMaps
    become lists of ``{"key": ..., "value": ...}`` (keys need not be strings
    and order matters), enums export their member name and byte arrays a hex
    string. Non-finite floats export as the strings ``"nan"``, ``"inf"`` and
    ``"-inf"``.
    """

    def __init__(self):
        self._stack: List[Any] = []

    def export(self, node: SaveData) -> Any:
        """Return the exported form of ``node``."""
        root: Dict[str, Any] = {}
        self._stack = [root]
        node.draw_raw_ui(self, 'root')
        return root['root']

    def _put(self, ident: str, value: Any):
        top = self._stack[-1]
        if isinstance(top, list):
            top.append(value)
        else:
            top[ident] = value

    def _nested(self, ident: str, container, children):
        self._put(ident, container)
        self._stack.append(container)
        try:
            for child_ident, child in children:
                child.draw_raw_ui(self, child_ident)
        finally:
            self._stack.pop()

    def draw_edit_bool(self, ident: str, node: Bool):
        self._put(ident, bool(node.value))

    def draw_edit_byte(self, ident: str, node: U8):
        self._put(ident, node.value)

    def draw_edit_int(self, ident: str, node: Scalar):
        self._put(ident, node.value)

    def draw_edit_float(self, ident: str, node: F32):
        self._put(ident, _json_float(node.value))

    def draw_edit_string(self, ident: str, node: SaveString):
        self._put(ident, node.value)

    def draw_edit_enum(self, ident: str, node: SaveEnum):
        self._put(ident, node.value.name)

    def draw_bytes(self, ident: str, node: ByteArray):
        self._put(ident, bytes(node.data).hex())

    def draw_edit_color(self, ident: str, node: Color):
        self._put(ident, [_json_float(c) for c in node.rgba()])

    def draw_struct(self, ident: str, fields: List[Tuple[str, SaveData]]):
        self._nested(ident, {}, fields)

    def draw_vec(self, ident: str, items: Vec):
        self._nested(ident, [], ((str(i), item) for i, item in enumerate(items)))

    def draw_indexmap(self, ident: str, mapping: IndexMap):
        entries: List[Dict[str, Any]] = []
        self._put(ident, entries)
        self._stack.append(entries)
        try:
            for i, (key, value) in enumerate(mapping.items()):
                self._nested(str(i), {}, [('key', key), ('value', value)])
        finally:
            self._stack.pop()

    def draw_boolvec(self, ident: str, bits: BitArray):
        self._put(ident, [bool(flag) for flag in bits])
