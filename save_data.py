#!/usr/bin/env python3
"""
Save Data Codec
===============

Decodes a fixed-layout game save buffer into an editable object graph and
encodes it back with byte-level fidelity.

Every value the codec can process implements the same ``SaveData`` contract:

  - ``deserialize(cursor)`` (classmethod) builds a node from the cursor
  - ``serialize(writer)`` appends the node's encoding to the writer
  - ``draw_raw_ui(ui, ident)`` hands the node to an editor front end

Containers are parametrised by subscription and only ever call the contract,
so they nest freely: ``Vec[IndexMap[SaveString, Vec[Bool]]]``.

Wire Format:
-----------
| Type          | Encoding                                                  |
|---------------|-----------------------------------------------------------|
| I8/U8         | 1 byte                                                    |
| I16/U16       | 2 bytes, little-endian                                    |
| I32/U32       | 4 bytes, little-endian                                    |
| F32           | 4 bytes, IEEE 754 single, little-endian                   |
| Bool          | 4-byte signed int, non-zero = true, written as 0 or 1     |
| SaveString    | i32 length; 0 = empty, < 0 = UTF-16LE (|len| code units), |
|               | > 0 = Windows-1252 (len bytes)                            |
| EnumU8/EnumU32| 1 or 4 byte unsigned int, must name an enum member        |
| ByteArray[N]  | N raw bytes                                               |
| Vec[T]        | u32 count + count * T                                     |
| IndexMap[K,V] | u32 count + count * (K, V)                                |
| BitArray      | u32 word count + count * u32 words, LSB first             |
| Record        | fields in declaration order, no framing                   |
| Color         | Record of four F32 (r, g, b, a)                           |

There are no varints, offsets or sizes anywhere in the format: decode is a
strictly forward recursive descent.

Usage:
------
    @dataclass
    class Profile(Record):
        name: SaveString
        level: I32
        flags: Vec[Bool]

    profile = Profile.from_bytes(data)
    profile.level.set(60)
    data = profile.to_bytes()
"""

import logging
import struct
from dataclasses import dataclass, fields, is_dataclass
from enum import Enum, IntEnum
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type, get_type_hints

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

# Text codecs selected by the sign of the string length prefix
ASCII_CODEC = 'cp1252'       # length > 0
UNICODE_CODEC = 'utf-16-le'  # length < 0

LENGTH_FORMAT = '<I'         # Vec / IndexMap / BitArray count prefix
STRING_LENGTH_FORMAT = '<i'  # signed, sign selects the text codec
BOOL_FORMAT = '<i'           # booleans are full words

BITS_PER_WORD = 32


class StringPolicy(Enum):
    """
    Which text encoding to write a non-empty string with.

    PRESERVE keeps the branch a string was read with (UTF-16 stays UTF-16) and
    otherwise picks Windows-1252 when the text fits in it. NARROWEST always
    prefers Windows-1252. UNICODE always writes UTF-16.
    """
    PRESERVE = 'preserve'
    NARROWEST = 'narrowest'
    UNICODE = 'unicode'


DEFAULT_STRING_POLICY = StringPolicy.PRESERVE


# =============================================================================
# ERRORS
# =============================================================================

class SaveDataError(Exception):
    """
    Base class for every decode/encode failure.

    Carries the cursor offset where the failure was detected and the path of
    fields/indices it propagated through, outermost first.
    """

    def __init__(self, message: str, offset: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.offset = offset
        self.path: List[str] = []

    def add_context(self, name: str):
        """Prepend a field name or ``[index]`` to the error path."""
        self.path.insert(0, name)

    @property
    def field_path(self) -> str:
        """Dotted path of the failing node, e.g. ``squad[1].powers[0]``."""
        out = ''
        for part in self.path:
            if part.startswith('[') or not out:
                out += part
            else:
                out += '.' + part
        return out

    def __str__(self):
        text = self.message
        if self.offset is not None:
            text += f" at offset 0x{self.offset:04X}"
        if self.path:
            text += f" (in {self.field_path})"
        return text


class UnexpectedEndOfFile(SaveDataError):
    """A read would run past the end of the buffer."""


class StringEncodingError(SaveDataError):
    """String bytes are not valid text in the encoding the length sign selects."""


class InvalidEnumValue(SaveDataError):
    """Integer has no matching enum variant."""


class TrailingDataError(SaveDataError):
    """Strict decode finished with bytes left in the buffer."""


# =============================================================================
# SAVE CURSOR
# =============================================================================

class SaveCursor:
    """
    Sequential, bounds-checked reader over an immutable save buffer.

    Every read either advances the position by exactly the requested length
    or raises ``UnexpectedEndOfFile`` and leaves the position untouched.
    There is no seek: the format has no internal offsets.
    """

    def __init__(self, data: bytes):
        """
        Initialize cursor at the start of the buffer.

        Args:
            data: Entire save file contents.
        """
        self._data = bytes(data)
        self._pos = 0

    @property
    def position(self) -> int:
        """Current read offset."""
        return self._pos

    def __len__(self) -> int:
        return len(self._data)

    def remaining(self) -> int:
        """Return number of bytes remaining from current position to end."""
        return len(self._data) - self._pos

    def is_at_end(self) -> bool:
        return self._pos == len(self._data)

    def read(self, n: int) -> bytes:
        """
        Read n bytes and advance position.

        Args:
            n: Number of bytes to read.

        Returns:
            Copy of the next n bytes.

        Raises:
            UnexpectedEndOfFile: Fewer than n bytes remain. Position unchanged.
        """
        if n < 0:
            raise ValueError(f"Cannot read a negative number of bytes: {n}")
        end = self._pos + n
        if end > len(self._data):
            raise UnexpectedEndOfFile(
                f"unexpected end of file: needed {n} bytes, {self.remaining()} remaining",
                offset=self._pos)
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def unpack(self, fmt: str) -> Any:
        """Read a single struct-formatted value and advance position."""
        return struct.unpack(fmt, self.read(struct.calcsize(fmt)))[0]

    def read_u8(self) -> int:
        return self.unpack('<B')

    def read_u32(self) -> int:
        return self.unpack('<I')

    def read_i32(self) -> int:
        return self.unpack('<i')


# =============================================================================
# SAVE WRITER
# =============================================================================

class SaveWriter:
    """
    Append-only little-endian sink, the encode-side mirror of SaveCursor.

    Also carries the string policy so nested strings are written consistently
    for the whole tree.
    """

    def __init__(self, string_policy: StringPolicy = DEFAULT_STRING_POLICY):
        self.data = bytearray()
        self.string_policy = string_policy

    def __len__(self) -> int:
        return len(self.data)

    def pack(self, fmt: str, value: Any):
        """Write a single struct-formatted value."""
        self.data.extend(struct.pack(fmt, value))

    def write_u8(self, val: int):
        self.data.append(val & 0xFF)

    def write_u32(self, val: int):
        self.pack('<I', val)

    def write_i32(self, val: int):
        self.pack('<i', val)

    def write_bytes(self, data: bytes):
        """Write raw bytes."""
        self.data.extend(data)

    def get_bytes(self) -> bytes:
        """Return the accumulated data as bytes."""
        return bytes(self.data)


# =============================================================================
# CAPABILITY CONTRACT
# =============================================================================

class SaveData:
    """
    Contract shared by every node of a decoded save.

    Subclasses implement ``deserialize`` and ``serialize``; ``draw_raw_ui``
    defaults to drawing nothing, which is what opaque nodes do.
    """

    @classmethod
    def deserialize(cls, cursor: SaveCursor) -> 'SaveData':
        raise NotImplementedError(f"{cls.__name__} does not implement deserialize")

    def serialize(self, writer: SaveWriter):
        raise NotImplementedError(f"{type(self).__name__} does not implement serialize")

    def draw_raw_ui(self, ui, ident: str):
        pass

    @classmethod
    def default(cls) -> 'SaveData':
        """Fresh node for editors adding an element to a container."""
        return cls()

    @classmethod
    def from_bytes(cls, data: bytes, strict: bool = True) -> 'SaveData':
        """
        Decode a whole buffer.

        Args:
            data: Save buffer.
            strict: Fail with TrailingDataError if bytes are left unread. With
                strict=False the tail is dropped and re-encoding will not
                reproduce the input.

        Returns:
            Decoded node.
        """
        cursor = SaveCursor(data)
        node = cls.deserialize(cursor)
        if not cursor.is_at_end():
            if strict:
                raise TrailingDataError(
                    f"{cursor.remaining()} trailing bytes after {cls.__name__}",
                    offset=cursor.position)
            logger.warning("Ignoring %d trailing bytes after %s", cursor.remaining(), cls.__name__)
        logger.debug("Decoded %s from %d bytes", cls.__name__, len(cursor))
        return node

    def to_bytes(self, string_policy: StringPolicy = DEFAULT_STRING_POLICY) -> bytes:
        """Encode this node (and its children) into a new buffer."""
        writer = SaveWriter(string_policy)
        self.serialize(writer)
        logger.debug("Encoded %s into %d bytes", type(self).__name__, len(writer))
        return writer.get_bytes()


_SPECIALIZATIONS: Dict[Tuple[type, Any], type] = {}


def _specialize(base: type, params: Any, label: str, **attrs) -> type:
    """Create (once) the subclass of ``base`` bound to ``params``."""
    key = (base, params)
    cls = _SPECIALIZATIONS.get(key)
    if cls is None:
        name = f"{base.__name__}[{label}]"
        attrs['__qualname__'] = name
        attrs['__module__'] = base.__module__
        cls = type(base)(name, (base,), attrs)
        _SPECIALIZATIONS[key] = cls
    return cls


def _type_label(tp: Any) -> str:
    return getattr(tp, '__name__', repr(tp))


def _check_save_type(tp: Any, role: str):
    if not (isinstance(tp, type) and issubclass(tp, SaveData)):
        raise TypeError(f"{role} must be a SaveData subclass, got {tp!r}")


# =============================================================================
# SCALARS
# =============================================================================

class Scalar(SaveData):
    """
    Fixed-width little-endian value held in ``.value``.

    Compares equal to another scalar of the same type with the same value, or
    to the bare Python value.
    """
    FORMAT = ''
    DEFAULT: Any = 0

    def __init__(self, value: Any = None):
        self.set(self.DEFAULT if value is None else value)

    def set(self, value: Any):
        """
        Replace the value after checking it fits the wire width.

        Raises:
            ValueError: Value cannot be packed with this type's format.
        """
        try:
            struct.pack(self.FORMAT, value)
        except (struct.error, OverflowError) as e:
            raise ValueError(f"{value!r} is not a valid {type(self).__name__}: {e}") from e
        self.value = value

    @classmethod
    def deserialize(cls, cursor: SaveCursor) -> 'Scalar':
        return cls(cursor.unpack(cls.FORMAT))

    def serialize(self, writer: SaveWriter):
        writer.pack(self.FORMAT, self.value)

    def draw_raw_ui(self, ui, ident: str):
        ui.draw_edit_int(ident, self)

    def __eq__(self, other):
        if isinstance(other, Scalar):
            return type(self) is type(other) and self.value == other.value
        return self.value == other

    def __hash__(self):
        return hash(self.value)

    def __repr__(self):
        return f"{type(self).__name__}({self.value!r})"


class I8(Scalar):
    FORMAT = '<b'


class U8(Scalar):
    FORMAT = '<B'

    def draw_raw_ui(self, ui, ident: str):
        ui.draw_edit_byte(ident, self)


class I16(Scalar):
    FORMAT = '<h'


class U16(Scalar):
    FORMAT = '<H'


class I32(Scalar):
    FORMAT = '<i'


class U32(Scalar):
    FORMAT = '<I'


class F32(Scalar):
    FORMAT = '<f'
    DEFAULT = 0.0

    def set(self, value: Any):
        if isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        super().set(value)
        # Hold exactly what the file will contain
        self.value = struct.unpack(self.FORMAT, struct.pack(self.FORMAT, self.value))[0]

    def draw_raw_ui(self, ui, ident: str):
        ui.draw_edit_float(ident, self)


class Bool(Scalar):
    """Boolean stored as a full 4-byte word: any non-zero word reads as true."""
    FORMAT = BOOL_FORMAT
    DEFAULT = False

    def set(self, value: Any):
        self.value = bool(value)

    @classmethod
    def deserialize(cls, cursor: SaveCursor) -> 'Bool':
        return cls(cursor.unpack(BOOL_FORMAT) != 0)

    def serialize(self, writer: SaveWriter):
        writer.pack(BOOL_FORMAT, 1 if self.value else 0)

    def draw_raw_ui(self, ui, ident: str):
        ui.draw_edit_bool(ident, self)


# =============================================================================
# STRINGS
# =============================================================================

class SaveString(SaveData):
    """
    Length-prefixed string whose prefix sign selects the encoding.

    The text is kept verbatim, including any NUL terminator the game wrote,
    and ``unicode`` records which branch it was read with so an unedited
    string is written back the same way.
    """

    def __init__(self, value: str = '', unicode: bool = False):
        self.set(value)
        self.unicode = unicode

    def set(self, value: str):
        if not isinstance(value, str):
            raise ValueError(f"{value!r} is not a str")
        self.value = value

    @classmethod
    def deserialize(cls, cursor: SaveCursor) -> 'SaveString':
        offset = cursor.position
        length = cursor.unpack(STRING_LENGTH_FORMAT)

        if length == 0:
            return cls('')

        if length < 0:
            raw = cursor.read(-length * 2)
            codec = UNICODE_CODEC
        else:
            raw = cursor.read(length)
            codec = ASCII_CODEC

        try:
            text = raw.decode(codec)
        except UnicodeDecodeError as e:
            raise StringEncodingError(f"string encoding error ({codec}: {e.reason})",
                                      offset=offset) from e
        return cls(text, unicode=length < 0)

    def use_unicode(self, policy: StringPolicy) -> bool:
        """Decide the encoding branch for the current text under ``policy``."""
        if policy is StringPolicy.UNICODE:
            return True
        if policy is StringPolicy.PRESERVE and self.unicode:
            return True
        try:
            self.value.encode(ASCII_CODEC)
        except UnicodeEncodeError:
            return True
        return False

    def serialize(self, writer: SaveWriter):
        if not self.value:
            writer.pack(STRING_LENGTH_FORMAT, 0)
            return

        unicode = self.use_unicode(writer.string_policy)
        codec = UNICODE_CODEC if unicode else ASCII_CODEC
        try:
            raw = self.value.encode(codec)
        except UnicodeEncodeError as e:
            raise StringEncodingError(f"string encoding error ({codec}: {e.reason})",
                                      offset=len(writer)) from e

        # UTF-16 length counts code units, not characters
        length = -(len(raw) // 2) if unicode else len(raw)
        writer.pack(STRING_LENGTH_FORMAT, length)
        writer.write_bytes(raw)

    def draw_raw_ui(self, ui, ident: str):
        ui.draw_edit_string(ident, self)

    def __eq__(self, other):
        if isinstance(other, SaveString):
            return self.value == other.value
        return self.value == other

    def __hash__(self):
        return hash(self.value)

    def __str__(self):
        return self.value

    def __repr__(self):
        return f"SaveString({self.value!r})"


# =============================================================================
# ENUMS
# =============================================================================

class SaveEnum(SaveData):
    """
    Integer validated against a closed ``IntEnum``.

    Use ``EnumU8[MyEnum]`` or ``EnumU32[MyEnum]``. Unknown values are fatal:
    there is no fallback variant.
    """
    ENUM: Optional[Type[IntEnum]] = None
    FORMAT = ''

    def __class_getitem__(cls, enum_type: Type[IntEnum]) -> type:
        if not (isinstance(enum_type, type) and issubclass(enum_type, IntEnum)):
            raise TypeError(f"{cls.__name__} needs an IntEnum, got {enum_type!r}")
        return _specialize(cls, enum_type, enum_type.__name__, ENUM=enum_type)

    def __init__(self, value: Any = None):
        if self.ENUM is None:
            raise TypeError(f"{type(self).__name__} is not bound to an enum")
        if value is None:
            value = next(iter(self.ENUM))
        self.set(value)

    @classmethod
    def _lookup(cls, raw: int, offset: Optional[int] = None) -> IntEnum:
        try:
            return cls.ENUM(raw)
        except ValueError as e:
            raise InvalidEnumValue(
                f"invalid enum representation: {raw} is not a {cls.ENUM.__name__}",
                offset=offset) from e

    def set(self, value: Any):
        self.value = self._lookup(value)

    @classmethod
    def deserialize(cls, cursor: SaveCursor) -> 'SaveEnum':
        offset = cursor.position
        return cls(cls._lookup(cursor.unpack(cls.FORMAT), offset))

    def serialize(self, writer: SaveWriter):
        writer.pack(self.FORMAT, int(self.value))

    def draw_raw_ui(self, ui, ident: str):
        ui.draw_edit_enum(ident, self)

    def __eq__(self, other):
        if isinstance(other, SaveEnum):
            return self.ENUM is other.ENUM and self.value == other.value
        return self.value == other

    def __hash__(self):
        return hash(self.value)

    def __repr__(self):
        return f"{type(self).__name__}({self.value!r})"


class EnumU8(SaveEnum):
    FORMAT = '<B'


class EnumU32(SaveEnum):
    FORMAT = '<I'


# =============================================================================
# CONTAINERS
# =============================================================================

class ByteArray(SaveData):
    """
    Fixed-size byte array, ``ByteArray[16]`` for a 16-byte GUID.

    Decoded one U8 at a time through the regular contract.
    """
    LENGTH: Optional[int] = None

    def __class_getitem__(cls, length: int) -> type:
        if not isinstance(length, int) or length < 0:
            raise TypeError(f"ByteArray length must be a non-negative int, got {length!r}")
        return _specialize(cls, length, str(length), LENGTH=length)

    def __init__(self, data: Optional[Iterable[int]] = None):
        if self.LENGTH is None:
            raise TypeError("ByteArray is not bound to a length")
        self.set(bytes(self.LENGTH) if data is None else data)

    def set(self, data: Iterable[int]):
        data = bytearray(data)
        if len(data) != self.LENGTH:
            raise ValueError(f"{type(self).__name__} needs {self.LENGTH} bytes, got {len(data)}")
        self.data = data

    @classmethod
    def deserialize(cls, cursor: SaveCursor) -> 'ByteArray':
        data = bytearray()
        for i in range(cls.LENGTH):
            try:
                data.append(U8.deserialize(cursor).value)
            except SaveDataError as e:
                e.add_context(f"[{i}]")
                raise
        return cls(data)

    def serialize(self, writer: SaveWriter):
        for byte in self.data:
            writer.write_u8(byte)

    def draw_raw_ui(self, ui, ident: str):
        ui.draw_bytes(ident, self)

    def __len__(self) -> int:
        return len(self.data)

    def __eq__(self, other):
        if isinstance(other, ByteArray):
            return self.data == other.data
        if isinstance(other, (bytes, bytearray)):
            return self.data == other
        return NotImplemented

    __hash__ = None

    def __repr__(self):
        return f"{type(self).__name__}({bytes(self.data).hex()})"


class Vec(SaveData, list):
    """
    Length-prefixed dynamic sequence, ``Vec[I32]``.

    A plain ``list`` of element nodes; the count prefix is recomputed on
    encode so editors can append and remove freely.
    """
    ELEMENT: Optional[Type[SaveData]] = None

    def __class_getitem__(cls, element: Type[SaveData]) -> type:
        _check_save_type(element, "Vec element")
        return _specialize(cls, element, _type_label(element), ELEMENT=element)

    @classmethod
    def deserialize(cls, cursor: SaveCursor) -> 'Vec':
        if cls.ELEMENT is None:
            raise TypeError("Vec is not bound to an element type")
        count = cursor.unpack(LENGTH_FORMAT)
        items = cls()
        for i in range(count):
            try:
                items.append(cls.ELEMENT.deserialize(cursor))
            except SaveDataError as e:
                e.add_context(f"[{i}]")
                raise
        return items

    def serialize(self, writer: SaveWriter):
        writer.pack(LENGTH_FORMAT, len(self))
        for i, item in enumerate(self):
            try:
                item.serialize(writer)
            except SaveDataError as e:
                e.add_context(f"[{i}]")
                raise

    def add_default(self) -> SaveData:
        """Append and return a default element."""
        item = self.ELEMENT.default()
        self.append(item)
        return item

    def draw_raw_ui(self, ui, ident: str):
        ui.draw_vec(ident, self)

    def __repr__(self):
        return f"{type(self).__name__}({list.__repr__(self)})"


class IndexMap(SaveData, dict):
    """
    Order-preserving map, ``IndexMap[I32, SaveString]``.

    Wire shape is a count followed by key/value pairs. A key seen twice keeps
    its first position and takes the later value, which is exactly how
    ``dict`` assignment behaves.
    """
    KEY: Optional[Type[SaveData]] = None
    VALUE: Optional[Type[SaveData]] = None

    def __class_getitem__(cls, params: Tuple[Type[SaveData], Type[SaveData]]) -> type:
        if not isinstance(params, tuple) or len(params) != 2:
            raise TypeError("IndexMap needs a key and a value type: IndexMap[K, V]")
        key, value = params
        _check_save_type(key, "IndexMap key")
        _check_save_type(value, "IndexMap value")
        return _specialize(cls, params, f"{_type_label(key)}, {_type_label(value)}",
                           KEY=key, VALUE=value)

    @classmethod
    def deserialize(cls, cursor: SaveCursor) -> 'IndexMap':
        if cls.KEY is None:
            raise TypeError("IndexMap is not bound to key/value types")
        count = cursor.unpack(LENGTH_FORMAT)
        mapping = cls()
        for i in range(count):
            try:
                key = cls.KEY.deserialize(cursor)
                mapping[key] = cls.VALUE.deserialize(cursor)
            except SaveDataError as e:
                e.add_context(f"[{i}]")
                raise
        return mapping

    def serialize(self, writer: SaveWriter):
        writer.pack(LENGTH_FORMAT, len(self))
        for i, (key, value) in enumerate(self.items()):
            try:
                key.serialize(writer)
                value.serialize(writer)
            except SaveDataError as e:
                e.add_context(f"[{i}]")
                raise

    def rename_key(self, old: SaveData, new: SaveData):
        """
        Re-key an entry in place, keeping its position.

        Keys hash by value, so mutating a key node directly would orphan its
        entry; editors go through this instead.

        Raises:
            KeyError: ``old`` is missing or ``new`` is already used.
        """
        if old not in self:
            raise KeyError(old)
        if new != old and new in self:
            raise KeyError(f"{new!r} already present")
        entries = list(self.items())
        self.clear()
        for key, value in entries:
            self[new if key == old else key] = value

    def add_default(self) -> SaveData:
        """Insert a default key if it is not already present and return its value."""
        key = self.KEY.default()
        if key not in self:
            self[key] = self.VALUE.default()
        return self[key]

    def draw_raw_ui(self, ui, ident: str):
        ui.draw_indexmap(ident, self)

    def __repr__(self):
        return f"{type(self).__name__}({dict.__repr__(self)})"


class BitArray(SaveData, list):
    """
    Word-packed boolean table (plot flags).

    Stored as a u32 word count followed by little-endian u32 words; bit ``i``
    is bit ``i % 32`` of word ``i // 32``. Exposed as a list of bools whose
    length is padded to a whole number of words on encode.
    """

    @classmethod
    def deserialize(cls, cursor: SaveCursor) -> 'BitArray':
        count = cursor.unpack(LENGTH_FORMAT)
        bits = cls()
        for _ in range(count):
            word = cursor.read_u32()
            bits.extend(bool((word >> bit) & 1) for bit in range(BITS_PER_WORD))
        return bits

    def serialize(self, writer: SaveWriter):
        count = (len(self) + BITS_PER_WORD - 1) // BITS_PER_WORD
        writer.pack(LENGTH_FORMAT, count)
        for index in range(count):
            word = 0
            chunk = self[index * BITS_PER_WORD:(index + 1) * BITS_PER_WORD]
            for bit, flag in enumerate(chunk):
                if flag:
                    word |= 1 << bit
            writer.write_u32(word)

    def draw_raw_ui(self, ui, ident: str):
        ui.draw_boolvec(ident, self)

    def __repr__(self):
        return f"BitArray({len(self)} bits, {sum(1 for b in self if b)} set)"


# =============================================================================
# RECORDS
# =============================================================================

@lru_cache(maxsize=None)
def record_schema(cls: type) -> Tuple[Tuple[str, Type[SaveData]], ...]:
    """
    Return the (name, type) pairs of a record in binary layout order.

    Args:
        cls: A Record subclass decorated with @dataclass.

    Returns:
        Tuple of (field name, SaveData subclass).
    """
    if not is_dataclass(cls):
        raise TypeError(f"{cls.__name__} must be a @dataclass to be used as a Record")
    hints = get_type_hints(cls)
    schema = []
    for f in fields(cls):
        field_type = hints.get(f.name, f.type)
        _check_save_type(field_type, f"{cls.__name__}.{f.name}")
        schema.append((f.name, field_type))
    return tuple(schema)


class Record(SaveData):
    """
    Composite node: a @dataclass whose annotated fields are SaveData types,
    decoded and encoded in declaration order with no framing.
    """

    @classmethod
    def deserialize(cls, cursor: SaveCursor) -> 'Record':
        values = {}
        for name, field_type in record_schema(cls):
            try:
                values[name] = field_type.deserialize(cursor)
            except SaveDataError as e:
                e.add_context(name)
                raise
        return cls(**values)

    def serialize(self, writer: SaveWriter):
        for name, _ in record_schema(type(self)):
            try:
                getattr(self, name).serialize(writer)
            except SaveDataError as e:
                e.add_context(name)
                raise

    @classmethod
    def default(cls) -> 'Record':
        return cls(**{name: field_type.default() for name, field_type in record_schema(cls)})

    def save_fields(self) -> List[Tuple[str, SaveData]]:
        """Field name/node pairs in layout order."""
        return [(name, getattr(self, name)) for name, _ in record_schema(type(self))]

    def draw_raw_ui(self, ui, ident: str):
        ui.draw_struct(ident, self.save_fields())


@dataclass
class Color(Record):
    """RGBA colour stored as four F32 channels, drawn with a colour picker."""
    r: F32
    g: F32
    b: F32
    a: F32

    def rgba(self) -> Tuple[float, float, float, float]:
        return (self.r.value, self.g.value, self.b.value, self.a.value)

    def set(self, rgba: Iterable[float]):
        """Replace all four channels at once."""
        values = list(rgba)
        if len(values) != 4:
            raise ValueError(f"Color needs 4 channels, got {len(values)}")
        for channel, value in zip((self.r, self.g, self.b, self.a), values):
            channel.set(value)

    def draw_raw_ui(self, ui, ident: str):
        ui.draw_edit_color(ident, self)


# =============================================================================
# ENTRY POINTS
# =============================================================================

def decode(schema: Type[SaveData], data: bytes, strict: bool = True) -> SaveData:
    """
    Decode a save buffer with the given schema.

    Args:
        schema: Root SaveData type (usually a Record subclass).
        data: Entire save file contents.
        strict: Reject buffers with unread trailing bytes.

    Returns:
        Root node of the decoded tree.
    """
    return schema.from_bytes(data, strict=strict)


def encode(node: SaveData, string_policy: StringPolicy = DEFAULT_STRING_POLICY) -> bytes:
    """Encode a decoded (and possibly edited) tree back into a save buffer."""
    return node.to_bytes(string_policy)
