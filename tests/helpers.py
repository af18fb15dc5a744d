""" Builders of synthetic tables shared by tests. """

import struct

from dmitri.logging import Logger
from dmitri.types import EntryPoint, Header, Structure, HEADER_SIZE
from dmitri import encoder

class CollectingLogger(Logger):
    """ Keeps messages for inspection, never raises. """
    def __init__(self):
        self.infos = []
        self.warnings = []
        self.errors = []

    def info(self, msg):
        self.infos.append(msg)

    def warning(self, msg):
        self.warnings.append(msg)

    def decodererror(self, msg):
        self.errors.append(msg)

def structure(type, handle, data = b"", strings = ()):
    return Structure(Header(type, HEADER_SIZE + len(data), handle), data, strings)

def formatted(type, handle, length, fields = (), strings = (), fill = 0):
    """ Structure of given declared length; `fields` are (offset, format, value)
        with offsets as printed in DSP0134 (header included). """
    data = bytearray([fill] * (length - HEADER_SIZE))
    for offset, fmt, value in fields:
        struct.pack_into('<' + fmt, data, offset - HEADER_SIZE, value)
    return structure(type, handle, bytes(data), strings)

def raw_table(structures, end_of_table = True):
    return bytes(encoder.encode_table(structures, end_of_table, logger=CollectingLogger()))

def sample_structures():
    return [
        formatted(0, 0x0000, 0x1A, [(0x04, 'B', 1), (0x05, 'B', 2), (0x08, 'B', 3), (0x09, 'B', 0x0F),
                                    (0x0A, 'Q', 0x08), (0x12, 'B', 0x01), (0x13, 'B', 0x18)],
                  ["ACME", "1.02", "01/02/2024"]),
        formatted(1, 0x0001, 0x1B, [(0x04, 'B', 1), (0x05, 'B', 2), (0x08, '16s', bytes(range(16)))],
                  ["ACME", "Widget"]),
        structure(200, 0x0002, b"\x01\x02\x03", ["oem"]),
    ]

def smbios3_entry_point(table_length, table_address = 0x7E000000, major = 3, minor = 4):
    return EntryPoint(EntryPoint.SMBIOS3_64, major, minor, 0,
        table_address  = table_address,
        table_length   = table_length,
        checksum_valid = True,
        entry_revision = 1,
        entry_length   = 0x18)

def legacy_entry_point(table_length, table_address = 0x000E1000, count = 0, major = 2, minor = 8):
    return EntryPoint(EntryPoint.LEGACY32, major, minor,
        table_address      = table_address,
        table_length       = table_length,
        checksum_valid     = True,
        structure_count    = count,
        max_structure_size = 0x1B,
        bcd_revision       = (major << 4) + minor,
        entry_length       = 0x1F)
