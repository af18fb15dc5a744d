""" Versioned field decoding.

    Every structure type is described by a StructureSpec (see
    specification.py). Decoding follows the same rules for every type:

    1. structure shorter than the base revision is rejected (StructureTooShort);
    2. fields of later revisions are decoded only when the structure is at
       least as long as the revision requires, otherwise they are None;
    3. a primary field holding its sentinel defers to its extended field,
       if extended field is absent the derived value is None (unknown);
    4. granularity selectors and biases are resolved by Unit before the
       value is exposed.
"""

from collections import OrderedDict
import uuid

from .specification import *
from .logging       import *
from .types         import *

MYPY = False
if MYPY:
    from typing import Any, Callable, Dict, List, Optional, Tuple, Type

__all__ = ["DECODERS", "present", "promote", "FieldDecoder", "decode_structure", "decode_records", "table_config"]

""" Structure type to layout. Types not listed are decoded as raw records. """
DECODERS = dict((s.type, s) for s in STRUCTURE_SPECS) # type: Dict[int, StructureSpec]

def present(structure, minlength): # type: (Structure, int) -> bool
    """ True if structure is long enough to contain fields ending at minlength. """
    return structure.header.length >= minlength

def promote(primary, extended, sentinel, unit = IDENTITY, extended_unit = None,
            unknown = (), extended_unknown = ()):
    # type: (Optional[int], Optional[int], Optional[int], Unit, Optional[Unit], Tuple[int, ...], Tuple[int, ...]) -> Optional[int]
    """ Value of primary field resolved with `unit`, or value of extended
        field resolved with `extended_unit` when primary holds sentinel.
        None means unknown. """
    if primary is None or primary in unknown:
        return None
    if sentinel is not None and primary == sentinel:
        if extended is None or extended in extended_unknown:
            return None
        if extended_unit is None:
            extended_unit = unit
        return extended_unit.resolve(extended)
    return unit.resolve(primary)

class FieldDecoder(object):
    logger         = None # type: Logger
    version        = None # type: Optional[Tuple[int, int]]
    specs          = None # type: Dict[int, StructureSpec]
    field_decoders = None # type: Dict[Type[FieldSpec], Callable[[FieldSpec, Structure], Any]]

    def __init__(self, logger = None, version = None, specs = None):
        # type: (Optional[Logger], Optional[Tuple[int, int]], Optional[Dict[int, StructureSpec]]) -> None
        if logger is None:
            self.logger = StdErrLogger()
        else:
            self.logger = logger
        self.version = version
        self.specs = DECODERS if specs is None else specs

        # Subclasses first, first match wins
        self.field_decoders = OrderedDict()
        self.field_decoders[Str]       = self.decode_str
        self.field_decoders[Flags]     = self.decode_flags
        self.field_decoders[Uuid]      = self.decode_uuid
        self.field_decoders[FieldSpec] = self.decode_int

    def warning(self, msg): # type: (str) -> None
        self.logger.warning(msg)

    # {{{ field decoders
    def decode_int(self, spec, s): # type: (FieldSpec, Structure) -> int
        offset = spec.offset - HEADER_SIZE
        if spec.width == 1:
            return s.byte(offset)
        if spec.width == 2:
            return s.word(offset)
        if spec.width == 4:
            return s.dword(offset)
        assert spec.width == 8
        return s.qword(offset)

    def decode_str(self, spec, s): # type: (FieldSpec, Structure) -> str
        index = s.byte(spec.offset - HEADER_SIZE)
        if index > len(s.strings):
            self.warning("Structure 0x%04X field %s refers to string %d, only %d strings present"
                % (s.handle, spec.name, index, len(s.strings)))
        return s.string(index)

    def decode_flags(self, spec, s): # type: (FieldSpec, Structure) -> Bitmask
        assert isinstance(spec, Flags)
        return Bitmask(self.decode_int(spec, s), spec.bits)

    def decode_uuid(self, spec, s): # type: (FieldSpec, Structure) -> Optional[str]
        raw = s.raw(spec.offset - HEADER_SIZE, spec.width)
        if raw is None or raw in (b'\xff' * 16, b'\x00' * 16):
            # Not present (all zeroes) or present but not set (all ones)
            return None
        if self.version is None or self.version >= (2, 6):
            u = uuid.UUID(bytes_le=raw)
        else:
            u = uuid.UUID(bytes=raw)
        return str(u).upper()
    # }}}

    def decode_field(self, spec, s): # type: (FieldSpec, Structure) -> Any
        for t, d in self.field_decoders.items():
            if isinstance(spec, t):
                return d(spec, s)
        raise AssertionError("No decoder for %s" % (type(spec).__name__,))

    def decode_promoted(self, spec, s, values): # type: (Promoted, Structure, Dict[str, Any]) -> Optional[int]
        primary  = values[spec.primary]
        extended = values[spec.extended] if spec.extended is not None else None
        if primary is not None and primary == spec.sentinel and extended is None:
            self.warning("Structure 0x%04X field %s is 0x%X but %s is absent, %s unknown"
                % (s.handle, spec.primary, primary, spec.extended, spec.name))
        return promote(primary, extended, spec.sentinel, spec.unit, spec.extended_unit,
            spec.unknown, spec.extended_unknown)

    def header_record(self, s): # type: (Structure) -> OrderedDict[str, Any]
        out = OrderedDict() # type: OrderedDict[str, Any]
        out["type"]   = s.header.type
        out["name"]   = type_name(s.header.type)
        out["handle"] = s.header.handle
        out["length"] = s.header.length
        return out

    def decode_raw(self, s): # type: (Structure) -> OrderedDict[str, Any]
        """ Record of structure type without decoder. """
        out = self.header_record(s)
        out["data"]    = s.data
        out["strings"] = list(s.strings)
        return out

    def decode_structure(self, s): # type: (Structure) -> OrderedDict[str, Any]
        spec = self.specs.get(s.header.type)
        if spec is None:
            return self.decode_raw(s)
        if not present(s, spec.minlength):
            raise StructureTooShort("%s structure 0x%04X is %d bytes long, at least %d required"
                % (spec.name, s.header.handle, s.header.length, spec.minlength))
        out = self.header_record(s)
        values = {} # type: Dict[str, Any]
        for revision in spec.revisions:
            available = present(s, revision.minlength)
            for field in revision.fields:
                values[field.name] = self.decode_field(field, s) if available else None
                out[field.name] = values[field.name]
        for derived in spec.derived:
            out[derived.name] = self.decode_promoted(derived, s, values)
        return out

    def decode(self, table): # type: (Table) -> List[OrderedDict[str, Any]]
        out = []
        for s in table:
            try:
                out.append(self.decode_structure(s))
            except StructureTooShort as e:
                self.warning("%s, keeping raw data" % (e.message,))
                out.append(self.decode_raw(s))
        return out

    def get(self, table, type): # type: (Table, int) -> OrderedDict[str, Any]
        """ Decode first structure of type. Raises StructureNotPresent. """
        return self.decode_structure(table.get(type))

    def get_all(self, table, type): # type: (Table, int) -> List[OrderedDict[str, Any]]
        return [self.decode_structure(s) for s in table.find(type)]

def _version(table): # type: (Table) -> Optional[Tuple[int, int]]
    return table.entry_point.version if table.entry_point is not None else None

def decode_structure(structure, logger = None, version = None):
    # type: (Structure, Optional[Logger], Optional[Tuple[int, int]]) -> OrderedDict[str, Any]
    return FieldDecoder(logger, version).decode_structure(structure)

def decode_records(table, logger = None): # type: (Table, Optional[Logger]) -> List[OrderedDict[str, Any]]
    return FieldDecoder(logger, _version(table)).decode(table)

def table_config(table, logger = None, fields = True): # type: (Table, Optional[Logger], bool) -> OrderedDict[str, Any]
    """ Table as nested dictionaries: entry point and raw structures, with
        decoded fields when `fields` is set. encoder.encode() accepts result. """
    ret = OrderedDict() # type: OrderedDict[str, Any]
    ep = table.entry_point
    if ep is not None:
        smbios = OrderedDict() # type: OrderedDict[str, Any]
        smbios["entry_point"] = ep.kind
        smbios["major"]       = ep.major
        smbios["minor"]       = ep.minor
        smbios["docrev"]      = ep.docrev
        smbios["address"]     = ep.table_address
        ret["smbios"] = smbios
    decoder = FieldDecoder(logger, _version(table))
    records = decoder.decode(table) if fields else [None] * len(table)
    structures = []
    for s, record in zip(table, records):
        cfg = OrderedDict() # type: OrderedDict[str, Any]
        cfg["type"]    = s.header.type
        cfg["name"]    = type_name(s.header.type)
        cfg["handle"]  = s.header.handle
        cfg["data"]    = s.data
        cfg["strings"] = list(s.strings)
        if record is not None and s.header.type in decoder.specs and "data" not in record:
            cfg["fields"] = OrderedDict((k, v) for k, v in record.items()
                if k not in ("type", "name", "handle", "length"))
        structures.append(cfg)
    ret["structure"] = structures
    return ret
