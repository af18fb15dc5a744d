""" Table dump files.

    Two formats are read:

    * ``SMBIOSRAW``: 28 byte header (magic, format version, entry point
      type, SMBIOS version, table length and original address) followed by
      raw table;
    * binary dump with entry point at offset 0 and table at 0x20 (address
      field of the entry point is rewritten to 0x20), as produced by
      ``dmidecode --dump-bin``.

    Both can be written as well.
"""

import struct

from .specification import *
from .logging       import *
from .types         import *
from .              import decoder, encoder, entrypoint

MYPY = False
if MYPY:
    from typing import Optional, Tuple, Union

__all__ = ["RAW_MAGIC", "decode_dump", "encode_dump", "load", "save"]

RAW_MAGIC   = b"SMBIOSRAW"
RAW_VERSION = 1
RAW_FORMAT  = '<9sBBBBBBIQx'
RAW_HEADER_SIZE = struct.calcsize(RAW_FORMAT)
assert RAW_HEADER_SIZE == 28

BIN_TABLE_OFFSET = 0x20

FORMATS = ("raw", "bin")

def decode_dump(data, logger = None): # type: (Union[bytes, bytearray], Optional[Logger]) -> Tuple[EntryPoint, bytes]
    """ Split dump file content into entry point and raw table bytes. """
    data = bytes(data)
    if data.startswith(RAW_MAGIC):
        return _decode_raw(data)
    if data.startswith(SM3_ANCHOR) or data.startswith(SM_ANCHOR):
        return _decode_bin(data, logger)
    raise DecoderError("Unknown dump format")

def _decode_raw(data): # type: (bytes) -> Tuple[EntryPoint, bytes]
    if len(data) < RAW_HEADER_SIZE:
        raise DecoderError("Dump header truncated (%d < %d bytes)" % (len(data), RAW_HEADER_SIZE))
    magic, version, ep_type, major, minor, docrev, _, length, address = \
        struct.unpack_from(RAW_FORMAT, data)
    if version != RAW_VERSION:
        raise DecoderError("Unsupported dump format version %d" % (version,))
    table = data[RAW_HEADER_SIZE:RAW_HEADER_SIZE + length]
    if len(table) < length:
        raise DecoderError("Premature end of dump, expected %d table bytes, got %d" % (length, len(table)))
    ep = EntryPoint.resolved(major, minor, docrev, length, address)
    ep.kind = EntryPoint.SMBIOS3_64 if ep_type == 1 else EntryPoint.LEGACY32
    return ep, table

def _decode_bin(data, logger): # type: (bytes, Optional[Logger]) -> Tuple[EntryPoint, bytes]
    ep = entrypoint.parse(data, logger)
    offset = ep.table_address
    if offset < ep.entry_length or offset >= len(data):
        offset = BIN_TABLE_OFFSET
    return ep, data[offset:]

def encode_dump(ep, table, format = "raw"): # type: (EntryPoint, Union[bytes, bytearray], str) -> bytearray
    table = bytes(table)
    if format == "raw":
        ret = bytearray(struct.pack(RAW_FORMAT, RAW_MAGIC, RAW_VERSION,
            1 if ep.kind == EntryPoint.SMBIOS3_64 else 0,
            ep.major, ep.minor, ep.docrev, 0, len(table), ep.table_address))
    elif format == "bin":
        copy = EntryPoint(ep.kind, ep.major, ep.minor, ep.docrev,
            table_address      = BIN_TABLE_OFFSET,
            table_length       = len(table),
            checksum_valid     = True,
            structure_count    = ep.structure_count,
            max_structure_size = ep.max_structure_size,
            bcd_revision       = ep.bcd_revision,
            entry_revision     = ep.entry_revision)
        ret = encoder.encode_entry_point(copy)
        ret += bytearray(BIN_TABLE_OFFSET - len(ret))
    else:
        raise EncoderError("Unknown dump format %r, expected one of %s" % (format, ", ".join(FORMATS)))
    return ret + table

def load(path, logger = None, lenient_tail = True): # type: (str, Optional[Logger], bool) -> Table
    with open(path, "rb") as f:
        data = f.read()
    ep, table = decode_dump(data, logger)
    return decoder.decode(table, ep, logger, lenient_tail)

def save(path, table, format = "raw", logger = None): # type: (str, Table, str, Optional[Logger]) -> None
    """ Write table to dump file. Structures are re-encoded, so the table
        is written in canonical form even if it was read leniently. """
    raw = encoder.encode_table(table.structures, logger=logger)
    ep = table.entry_point
    if ep is None:
        ep = EntryPoint.resolved(3, 0, 0, len(raw))
    data = encode_dump(ep, raw, format)
    with open(path, "wb") as f:
        f.write(data)
