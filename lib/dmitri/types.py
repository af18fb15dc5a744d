from collections import namedtuple
import struct

from .logging import *

MYPY = False
if MYPY:
    from typing import Dict, Iterator, List, Optional, Tuple, Union

__all__ = ["EntryPoint", "Header", "Structure", "Table", "Bitmask", "HEADER_SIZE", "END_OF_TABLE"]

HEADER_SIZE  = 4
END_OF_TABLE = 127

class EntryPoint(object): # {{{
    """ Descriptor announcing location, length and version of the structure table. """
    LEGACY32   = "32-bit"
    SMBIOS3_64 = "64-bit"

    kind               = None # type: str
    major              = None # type: int
    minor              = None # type: int
    docrev             = None # type: int
    table_address      = None # type: int
    table_length       = None # type: int
    checksum_valid     = None # type: bool
    structure_count    = None # type: int
    max_structure_size = None # type: int
    bcd_revision       = None # type: int
    entry_revision     = None # type: int
    entry_length       = None # type: int

    def __init__(self, kind, major, minor, docrev = 0, table_address = 0, table_length = 0,
                 checksum_valid = False, structure_count = 0, max_structure_size = 0,
                 bcd_revision = 0, entry_revision = 0, entry_length = 0):
        # type: (str, int, int, int, int, int, bool, int, int, int, int, int) -> None
        self.kind               = kind
        self.major              = major
        self.minor              = minor
        self.docrev             = docrev
        self.table_address      = table_address
        self.table_length       = table_length
        self.checksum_valid     = checksum_valid
        self.structure_count    = structure_count
        self.max_structure_size = max_structure_size
        self.bcd_revision       = bcd_revision
        self.entry_revision     = entry_revision
        self.entry_length       = entry_length

    @classmethod
    def resolved(cls, major, minor, docrev, table_length, table_address = 0):
        # type: (int, int, int, int, int) -> EntryPoint
        """ Descriptor supplied by the OS (or a dump file header). These carry
            no checksum, the provider has validated the entry point already. """
        kind = cls.SMBIOS3_64 if major >= 3 else cls.LEGACY32
        return cls(kind, major, minor, docrev, table_address, table_length, True)

    @property
    def version(self): # type: () -> Tuple[int, int]
        return (self.major, self.minor)

    def __str__(self): # type: () -> str
        if self.kind == self.SMBIOS3_64:
            return "SMBIOS %d.%d.%d" % (self.major, self.minor, self.docrev)
        return "SMBIOS %d.%d" % (self.major, self.minor)

    def __repr__(self): # type: () -> str
        return "<EntryPoint %s %s table=0x%X+%d>" % (
            self.kind, str(self), self.table_address, self.table_length)

    def __eq__(self, other): # type: (object) -> bool
        return isinstance(other, EntryPoint) and vars(self) == vars(other)

    def __ne__(self, other): # type: (object) -> bool
        return not self == other
# }}}

class Header(namedtuple('Header', 'type length handle')):
    """ Common 4 byte structure header. """
    __slots__ = ()

    FORMAT = '<BBH'

    @classmethod
    def unpack(cls, data, offset = 0): # type: (bytes, int) -> Header
        return cls(*struct.unpack_from(cls.FORMAT, data, offset))

    def pack(self): # type: () -> bytes
        return struct.pack(self.FORMAT, self.type, self.length, self.handle)

class Structure(namedtuple('Structure', 'header data strings')): # {{{
    """ One structure: header, formatted area (header excluded) and string table.

        All accessors take zero-based offsets into `data`. Reads that would
        cross the end of formatted area return 0 (or None for raw()). """
    __slots__ = ()

    _WIDTHS = {1: '<B', 2: '<H', 4: '<I', 8: '<Q'}

    def __new__(cls, header, data, strings = ()): # type: (Header, bytes, Tuple[str, ...]) -> Structure
        return super(Structure, cls).__new__(cls, header, bytes(data), tuple(strings))

    @property
    def type(self): # type: () -> int
        return self.header.type

    @property
    def handle(self): # type: () -> int
        return self.header.handle

    @property
    def length(self): # type: () -> int
        return self.header.length

    def _read(self, offset, width): # type: (int, int) -> int
        if offset < 0 or offset + width > len(self.data):
            return 0
        return struct.unpack_from(self._WIDTHS[width], self.data, offset)[0]

    def byte(self, offset): # type: (int) -> int
        return self._read(offset, 1)

    def word(self, offset): # type: (int) -> int
        return self._read(offset, 2)

    def dword(self, offset): # type: (int) -> int
        return self._read(offset, 4)

    def qword(self, offset): # type: (int) -> int
        return self._read(offset, 8)

    def raw(self, offset, size): # type: (int, int) -> Optional[bytes]
        if offset < 0 or size < 0 or offset + size > len(self.data):
            return None
        return self.data[offset:offset + size]

    def string(self, index): # type: (int) -> str
        """ String by 1-based index, empty string for 0 or unknown index. """
        if index < 1 or index > len(self.strings):
            return ""
        return self.strings[index - 1]
# }}}

class Table(object): # {{{
    """ Ordered structures of one table, as found in the byte stream. """
    entry_point = None # type: Optional[EntryPoint]
    structures  = None # type: Tuple[Structure, ...]
    error       = None # type: Optional[MalformedStructure]

    def __init__(self, structures, entry_point = None, error = None):
        # type: (List[Structure], Optional[EntryPoint], Optional[MalformedStructure]) -> None
        self.structures  = tuple(structures)
        self.entry_point = entry_point
        self.error       = error

    @property
    def complete(self): # type: () -> bool
        return self.error is None

    def check(self): # type: () -> Table
        """ Raise the segmentation error, if any. """
        if self.error is not None:
            raise self.error
        return self

    def find(self, type): # type: (int) -> List[Structure]
        return [s for s in self.structures if s.header.type == type]

    def get(self, type): # type: (int) -> Structure
        for s in self.structures:
            if s.header.type == type:
                return s
        raise StructureNotPresent("No structure of type %d in table" % (type,), type)

    def __iter__(self): # type: () -> Iterator[Structure]
        return iter(self.structures)

    def __len__(self): # type: () -> int
        return len(self.structures)

    def __getitem__(self, i): # type: (int) -> Structure
        return self.structures[i]

    def __eq__(self, other): # type: (object) -> bool
        return (isinstance(other, Table)
            and self.structures == other.structures
            and self.entry_point == other.entry_point
            and type(self.error) is type(other.error))

    def __ne__(self, other): # type: (object) -> bool
        return not self == other

    def __repr__(self): # type: () -> str
        return "<Table %d structures%s>" % (len(self.structures), "" if self.complete else ", truncated")
# }}}

class Bitmask(object): # {{{
    """ Integer flag set with names of its bits. """
    __slots__ = ("value", "bits")

    def __init__(self, value, bits = None): # type: (int, Optional[Dict[int, str]]) -> None
        self.value = int(value)
        self.bits  = bits if bits is not None else {}

    def has(self, mask): # type: (int) -> bool
        """ True if any bit of mask is set. """
        return self.value & mask != 0

    def matches(self, mask, expected): # type: (int, int) -> bool
        """ True if bits selected by mask are equal to expected. """
        return self.value & mask == expected & mask

    def bit(self, n): # type: (int) -> bool
        return self.has(1 << n)

    def names(self): # type: () -> List[str]
        return [self.bits[n] for n in sorted(self.bits) if self.bit(n)]

    def __int__(self): # type: () -> int
        return self.value

    def __index__(self): # type: () -> int
        return self.value

    def __and__(self, mask): # type: (int) -> int
        return self.value & int(mask)

    def __eq__(self, other): # type: (object) -> bool
        if isinstance(other, Bitmask):
            return self.value == other.value
        if isinstance(other, int):
            return self.value == other
        return NotImplemented

    def __ne__(self, other): # type: (object) -> bool
        r = self.__eq__(other)
        return r if r is NotImplemented else not r

    def __hash__(self): # type: () -> int
        return hash(self.value)

    def __repr__(self): # type: () -> str
        return "Bitmask(0x%X, %r)" % (self.value, self.names())
# }}}
