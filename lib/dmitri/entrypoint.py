""" Entry point locator and validator.

    Two shapes are supported, both anchor prefixed and checksummed:

    * legacy 32-bit ``_SM_`` entry point (SMBIOS 2.x), 0x1F bytes, with
      intermediate ``_DMI_`` anchor and its own checksum at offset 0x10;
    * ``_SM3_`` 64-bit entry point (SMBIOS 3.x), at least 0x18 bytes.

    An entry point is never returned unless its checksum is valid.
"""

import struct

from .specification import *
from .logging       import *
from .types         import *
from .utils         import *

MYPY = False
if MYPY:
    from typing import Callable, List, Optional, Tuple, Union

__all__ = ["parse_legacy", "parse_smbios3", "parse", "scan"]

def _logger(logger): # type: (Optional[Logger]) -> Logger
    return StdErrLogger() if logger is None else logger

def parse_legacy(data, logger = None): # type: (Union[bytes, bytearray], Optional[Logger]) -> EntryPoint
    """ Parse and validate 32-bit entry point at start of data. """
    logger = _logger(logger)
    data = bytes(data)
    if data[:4] != SM_ANCHOR:
        raise EntryPointNotFound("Anchor %r not found" % (SM_ANCHOR,))
    if len(data) < LEGACY_ENTRY_LENGTH:
        raise ChecksumError("Entry point truncated (%d bytes)" % (len(data),))
    length = data[0x05]
    if length == LEGACY_ENTRY_LENGTH_BUGGY:
        logger.warning("Entry point length is 0x1E, should be 0x1F (SMBIOS 2.1 firmware bug)")
    elif length != LEGACY_ENTRY_LENGTH:
        raise ChecksumError("Invalid entry point length 0x%02X" % (length,))
    if not checksum_ok(data[:length]):
        raise ChecksumError("Invalid entry point checksum, got 0x%02X expected 0x%02X"
            % (data[0x04], checksum(data[:0x04] + data[0x05:length])))
    if data[0x10:0x15] != DMI_ANCHOR:
        raise ChecksumError("Intermediate anchor %r not found" % (DMI_ANCHOR,))
    if not checksum_ok(data[0x10:0x1F]):
        raise ChecksumError("Invalid intermediate checksum, got 0x%02X expected 0x%02X"
            % (data[0x15], checksum(data[0x10:0x15] + data[0x16:0x1F])))

    major, minor, max_size, entry_rev = struct.unpack_from('<BBHB', data, 0x06)
    table_length, table_address, count, bcd = struct.unpack_from('<HIHB', data, 0x16)
    if major < 2:
        logger.decodererror("Legacy entry point announces SMBIOS %d.%d" % (major, minor))
    return EntryPoint(EntryPoint.LEGACY32, major, minor,
        table_address      = table_address,
        table_length       = table_length,
        checksum_valid     = True,
        structure_count    = count,
        max_structure_size = max_size,
        bcd_revision       = bcd,
        entry_revision     = entry_rev,
        entry_length       = length)

def parse_smbios3(data, logger = None): # type: (Union[bytes, bytearray], Optional[Logger]) -> EntryPoint
    """ Parse and validate 64-bit entry point at start of data. """
    logger = _logger(logger)
    data = bytes(data)
    if data[:5] != SM3_ANCHOR:
        raise EntryPointNotFound("Anchor %r not found" % (SM3_ANCHOR,))
    if len(data) < SM3_ENTRY_LENGTH:
        raise ChecksumError("Entry point truncated (%d bytes)" % (len(data),))
    length = data[0x06]
    if length < SM3_ENTRY_LENGTH:
        raise ChecksumError("Invalid entry point length 0x%02X" % (length,))
    if length > len(data):
        raise ChecksumError("Entry point truncated, %d of %d bytes present" % (len(data), length))
    if not checksum_ok(data[:length]):
        raise ChecksumError("Invalid entry point checksum, got 0x%02X expected 0x%02X"
            % (data[0x05], checksum(data[:0x05] + data[0x06:length])))

    major, minor, docrev, entry_rev = struct.unpack_from('<BBBB', data, 0x07)
    max_size, table_address = struct.unpack_from('<IQ', data, 0x0C)
    if major < 3:
        logger.decodererror("64-bit entry point announces SMBIOS %d.%d" % (major, minor))
    if entry_rev != 1:
        logger.warning("Unknown 64-bit entry point revision %d" % (entry_rev,))
    return EntryPoint(EntryPoint.SMBIOS3_64, major, minor, docrev,
        table_address  = table_address,
        table_length   = max_size,
        checksum_valid = True,
        entry_revision = entry_rev,
        entry_length   = length)

def parse(data, logger = None): # type: (Union[bytes, bytearray], Optional[Logger]) -> EntryPoint
    """ Parse pre-resolved entry point of either shape (e.g. content of
        /sys/firmware/dmi/tables/smbios_entry_point). """
    data = bytes(data)
    if data.startswith(SM3_ANCHOR):
        return parse_smbios3(data, logger)
    if data.startswith(SM_ANCHOR):
        return parse_legacy(data, logger)
    raise EntryPointNotFound("No entry point anchor at start of data")

def _scan_anchor(region, anchor, parser, base, aligned, logger):
    # type: (bytes, bytes, Callable[[bytes, Optional[Logger]], EntryPoint], int, bool, Logger) -> Tuple[Optional[EntryPoint], Optional[ChecksumError]]
    error = None # type: Optional[ChecksumError]
    pos = region.find(anchor)
    while pos >= 0:
        if not aligned or (base + pos) % SCAN_ALIGN == 0:
            try:
                ep = parser(region[pos:], logger)
            except ChecksumError as e:
                logger.warning("Ignoring corrupt entry point at 0x%X: %s" % (base + pos, e.message))
                error = e
            else:
                logger.info("Found %s entry point at 0x%X" % (ep.kind, base + pos))
                return ep, None
        pos = region.find(anchor, pos + 1)
    return None, error

def scan(region, base = 0, aligned = True, logger = None):
    # type: (Union[bytes, bytearray], int, bool, Optional[Logger]) -> EntryPoint
    """ Search region (mapped at physical address `base`) for entry point.

        First valid entry point of each shape is taken. If both shapes are
        present and valid, 64-bit one wins. When `aligned` is set, anchors
        are only accepted on 16 byte paragraph boundaries. """
    logger = _logger(logger)
    region = bytes(region)
    ep3, err3 = _scan_anchor(region, SM3_ANCHOR, parse_smbios3, base, aligned, logger)
    if ep3 is not None:
        return ep3
    ep2, err2 = _scan_anchor(region, SM_ANCHOR, parse_legacy, base, aligned, logger)
    if ep2 is not None:
        return ep2
    if err3 is not None:
        raise err3
    if err2 is not None:
        raise err2
    raise EntryPointNotFound("No entry point anchor in %d bytes at 0x%X" % (len(region), base))
