from .specification import *
from .logging       import *
from .types         import *
from .utils         import *

__all__ = [ "Encoder", "encode", "encode_table", "encode_entry_point" ]

import struct

MYPY = False
if MYPY:
    from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

STRING_ENCODING = 'utf8'
STRING_ERRORS   = 'surrogateescape'

""" Keys of structure configuration that are produced by decoding, but ignored by encoder. """
DERIVED_KEYS = ("name", "length", "fields")

class Encoder(object):
    """ Serialises structures into raw table and builds matching entry points. """
    logger = None # type: Logger

    def __init__(self, logger = None): # type: (Optional[Logger]) -> None
        if logger is None:
            self.logger = StdErrLogger()
        else:
            self.logger = logger

    # {{{ structures
    def encode_strings(self, strings, msgprefix): # type: (Iterable[str], str) -> bytearray
        ret = bytearray()
        for i, s in enumerate(strings):
            try:
                b = s.encode(STRING_ENCODING, STRING_ERRORS)
            except (AttributeError, UnicodeError) as e:
                raise EncoderError("%s.strings[%d]: cannot encode string: %s" % (msgprefix, i, e))
            if len(b) == 0:
                raise EncoderError("%s.strings[%d]: empty string would end string table" % (msgprefix, i))
            if b'\x00' in b:
                raise EncoderError("%s.strings[%d]: string contains null byte" % (msgprefix, i))
            ret += b + b'\x00'
        if len(ret) == 0:
            ret.append(0)
        ret.append(0)
        return ret

    def encode_structure(self, s, msgprefix = "structure"): # type: (Structure, str) -> bytearray
        length = HEADER_SIZE + len(s.data)
        if length > 255:
            raise EncoderError("%s: formatted area too long (%d bytes)" % (msgprefix, length))
        if s.header.length != length:
            self.logger.warning("%s: header length %d replaced by %d" % (msgprefix, s.header.length, length))
        ret = bytearray(Header(s.header.type, length, s.header.handle).pack())
        ret += s.data
        ret += self.encode_strings(s.strings, msgprefix)
        return ret

    def encode_table(self, structures, end_of_table = False): # type: (Iterable[Structure], bool) -> bytearray
        """ Raw table of structures, optionally terminated by End-of-Table
            structure (added only if last structure is not one). """
        ret = bytearray()
        last = None # type: Optional[Structure]
        handles = []
        for i, s in enumerate(structures):
            ret += self.encode_structure(s, "structure[%d]" % (i,))
            handles.append(s.header.handle)
            last = s
        if end_of_table and (last is None or last.header.type != END_OF_TABLE):
            handle = (max(handles) + 1) % 0x10000 if handles else 0
            ret += self.encode_structure(Structure(Header(END_OF_TABLE, HEADER_SIZE, handle), b""))
        return ret
    # }}}

    # {{{ entry points
    def encode_legacy(self, ep): # type: (EntryPoint) -> bytearray
        if ep.table_length > 0xFFFF or ep.table_address > 0xFFFFFFFF:
            raise EncoderError("Table does not fit 32-bit entry point (%d bytes at 0x%X)"
                % (ep.table_length, ep.table_address))
        bcd = ep.bcd_revision
        if not bcd and ep.minor < 10:
            bcd = (ep.major << 4) + ep.minor
        ret = bytearray(LEGACY_ENTRY_LENGTH)
        ret[0:4] = SM_ANCHOR
        ret[0x05] = LEGACY_ENTRY_LENGTH
        struct.pack_into('<BBHB', ret, 0x06, ep.major, ep.minor, ep.max_structure_size, ep.entry_revision)
        ret[0x10:0x15] = DMI_ANCHOR
        struct.pack_into('<HIHB', ret, 0x16, ep.table_length, ep.table_address, ep.structure_count, bcd)
        ret[0x15] = checksum(ret[0x10:0x1F])
        ret[0x04] = checksum(ret)
        return ret

    def encode_smbios3(self, ep): # type: (EntryPoint) -> bytearray
        ret = bytearray(SM3_ENTRY_LENGTH)
        ret[0:5] = SM3_ANCHOR
        ret[0x06] = SM3_ENTRY_LENGTH
        struct.pack_into('<BBBBB', ret, 0x07, ep.major, ep.minor, ep.docrev, ep.entry_revision or 1, 0)
        struct.pack_into('<IQ', ret, 0x0C, ep.table_length, ep.table_address)
        ret[0x05] = checksum(ret)
        return ret

    def encode_entry_point(self, ep): # type: (EntryPoint) -> bytearray
        if ep.kind == EntryPoint.SMBIOS3_64:
            return self.encode_smbios3(ep)
        return self.encode_legacy(ep)
    # }}}

    # {{{ configuration
    def _int(self, cfg, key, limit, msgprefix, default = None): # type: (Dict[str, Any], str, int, str, Optional[int]) -> int
        val = cfg.get(key, default)
        if not isinstance(val, int) or isinstance(val, bool) or val not in range(limit):
            raise EncoderError("%s.%s: integer in range(%d) required, got %r" % (msgprefix, key, limit, val))
        return val

    def structure_from_config(self, cfg, msgprefix): # type: (Dict[str, Any], str) -> Structure
        if not isinstance(cfg, dict):
            raise EncoderError("%s: configuration must be a dictionary" % (msgprefix,))
        unknown = [k for k in cfg if k not in ("type", "handle", "data", "strings") + DERIVED_KEYS]
        if unknown:
            raise EncoderError("%s: unknown configuration entries: %s" % (msgprefix, ", ".join(unknown)))
        t = self._int(cfg, "type", 256, msgprefix)
        handle = self._int(cfg, "handle", 0x10000, msgprefix)
        data = cfg.get("data", b"")
        if not isinstance(data, (bytes, bytearray)):
            raise EncoderError("%s.data: bytes required, got type %s" % (msgprefix, type(data).__name__))
        strings = cfg.get("strings", [])
        if isinstance(strings, str) or not isinstance(strings, (list, tuple)):
            raise EncoderError("%s.strings: expected list of strings, got type %s" % (msgprefix, type(strings).__name__))
        return Structure(Header(t, HEADER_SIZE + len(data), handle), data, strings)

    def entry_point_from_config(self, cfg, table, structures):
        # type: (Dict[str, Any], bytes, List[Structure]) -> EntryPoint
        if not isinstance(cfg, dict):
            raise EncoderError("smbios: configuration must be a dictionary")
        major = self._int(cfg, "major", 256, "smbios", 3)
        minor = self._int(cfg, "minor", 256, "smbios", 0)
        docrev = self._int(cfg, "docrev", 256, "smbios", 0)
        address = self._int(cfg, "address", 1 << 64, "smbios", 0)
        kind = cfg.get("entry_point", EntryPoint.SMBIOS3_64 if major >= 3 else EntryPoint.LEGACY32)
        if kind not in (EntryPoint.LEGACY32, EntryPoint.SMBIOS3_64):
            raise EncoderError("smbios.entry_point: expected %r or %r, got %r"
                % (EntryPoint.LEGACY32, EntryPoint.SMBIOS3_64, kind))
        max_size = max([s.header.length for s in structures] + [0])
        return EntryPoint(kind, major, minor, docrev,
            table_address      = address,
            table_length       = len(table),
            checksum_valid     = True,
            structure_count    = len(structures) if kind == EntryPoint.LEGACY32 else 0,
            max_structure_size = max_size if kind == EntryPoint.LEGACY32 else 0,
            entry_revision     = 1 if kind == EntryPoint.SMBIOS3_64 else 0,
            entry_length       = SM3_ENTRY_LENGTH if kind == EntryPoint.SMBIOS3_64 else LEGACY_ENTRY_LENGTH)

    def encode(self, cfg): # type: (Dict[str, Any]) -> Tuple[EntryPoint, bytearray]
        """ Encode configuration produced by fields.table_config() (or loaded
            from TOML/YAML) into entry point and raw table. """
        if not isinstance(cfg, dict):
            raise EncoderError("Configuration must be a dictionary")
        unknown = [k for k in cfg if k not in ("smbios", "structure")]
        if unknown:
            raise EncoderError("Invalid configuration entries: %s" % (", ".join(unknown),))
        scfg = cfg.get("structure", [])
        if not isinstance(scfg, list):
            raise EncoderError("structure: expected list of structures")
        structures = [self.structure_from_config(c, "structure[%d]" % (i,)) for i, c in enumerate(scfg)]
        table = self.encode_table(structures)
        ep = self.entry_point_from_config(cfg.get("smbios", {}), table, structures)
        return ep, table
    # }}}

def encode(cfg, logger = None): # type: (Dict[str, Any], Optional[Logger]) -> Tuple[EntryPoint, bytearray]
    e = Encoder(logger)
    return e.encode(cfg)

def encode_table(structures, end_of_table = False, logger = None):
    # type: (Iterable[Structure], bool, Optional[Logger]) -> bytearray
    return Encoder(logger).encode_table(structures, end_of_table)

def encode_entry_point(ep, logger = None): # type: (EntryPoint, Optional[Logger]) -> bytearray
    return Encoder(logger).encode_entry_point(ep)
