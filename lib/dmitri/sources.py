""" Platform sources of raw structure table.

    Every reader returns (EntryPoint, table bytes) or raises
    SourceUnavailable. Nothing is retried here.
"""

import errno
import os
import struct
import sys

from .specification import *
from .logging       import *
from .types         import *
from .              import decoder, entrypoint

MYPY = False
if MYPY:
    from typing import Optional, Tuple

__all__ = ["read_sysfs", "read_devmem", "read_windows", "parse_raw_smbios_data", "read_system", "read"]

SYSFS_DIR       = "/sys/firmware/dmi/tables"
SYSFS_ENTRY     = "smbios_entry_point"
SYSFS_TABLE     = "DMI"
DEVMEM          = "/dev/mem"

RSMB = 0x52534D42 # 'RSMB' provider signature
RAW_SMBIOS_DATA_FORMAT = '<BBBBI'
RAW_SMBIOS_DATA_SIZE   = struct.calcsize(RAW_SMBIOS_DATA_FORMAT)

def _unavailable(what, e): # type: (str, EnvironmentError) -> SourceUnavailable
    if e.errno in (errno.EACCES, errno.EPERM):
        return SourceUnavailable("%s: access denied (try running as root/admin)" % (what,))
    return SourceUnavailable("%s: %s" % (what, e.strerror or e))

def _read_file(path, offset = 0, size = -1): # type: (str, int, int) -> bytes
    try:
        with open(path, "rb") as f:
            if offset:
                f.seek(offset)
            return f.read(size)
    except EnvironmentError as e:
        raise _unavailable(path, e)

def read_sysfs(directory = SYSFS_DIR, logger = None): # type: (str, Optional[Logger]) -> Tuple[EntryPoint, bytes]
    """ Linux: entry point and table exported by kernel. Readable by root only on most distributions. """
    ep_data = _read_file(os.path.join(directory, SYSFS_ENTRY))
    table = _read_file(os.path.join(directory, SYSFS_TABLE))
    ep = entrypoint.parse(ep_data, logger)
    return ep, table

def read_devmem(path = DEVMEM, base = SCAN_BASE, size = SCAN_SIZE, logger = None):
    # type: (str, int, int, Optional[Logger]) -> Tuple[EntryPoint, bytes]
    """ Legacy BIOS systems: scan physical memory window for entry point and
        read table from announced address. """
    region = _read_file(path, base, size)
    ep = entrypoint.scan(region, base, logger=logger)
    table = _read_file(path, ep.table_address, ep.table_length)
    return ep, table

def parse_raw_smbios_data(buf): # type: (bytes) -> Tuple[EntryPoint, bytes]
    """ Windows RawSMBIOSData: calling method, major, minor, DMI revision,
        table length (dword), table. """
    if len(buf) < RAW_SMBIOS_DATA_SIZE:
        raise SourceUnavailable("RawSMBIOSData truncated (%d bytes)" % (len(buf),))
    _, major, minor, docrev, length = struct.unpack_from(RAW_SMBIOS_DATA_FORMAT, buf)
    table = buf[RAW_SMBIOS_DATA_SIZE:RAW_SMBIOS_DATA_SIZE + length]
    return EntryPoint.resolved(major, minor, docrev, len(table)), bytes(table)

def read_windows(): # type: () -> Tuple[EntryPoint, bytes]
    """ Windows: GetSystemFirmwareTable('RSMB'). """
    import ctypes
    kernel32 = ctypes.WinDLL('kernel32', use_last_error=True) # type: ignore
    kernel32.GetSystemFirmwareTable.argtypes = [ctypes.c_ulong, ctypes.c_ulong, ctypes.c_void_p, ctypes.c_ulong]
    kernel32.GetSystemFirmwareTable.restype = ctypes.c_uint

    ctypes.set_last_error(0) # type: ignore
    size = kernel32.GetSystemFirmwareTable(RSMB, 0, None, 0)
    if size == 0:
        err = ctypes.get_last_error() # type: ignore
        raise SourceUnavailable("GetSystemFirmwareTable failed (%d): %s" % (err, ctypes.FormatError(err))) # type: ignore
    buf = (ctypes.c_char * size)()
    ret = kernel32.GetSystemFirmwareTable(RSMB, 0, buf, size)
    if ret == 0 or ret > size:
        err = ctypes.get_last_error() # type: ignore
        raise SourceUnavailable("GetSystemFirmwareTable failed (%d): %s" % (err, ctypes.FormatError(err))) # type: ignore
    return parse_raw_smbios_data(bytes(buf)[:ret])

def read_system(logger = None): # type: (Optional[Logger]) -> Tuple[EntryPoint, bytes]
    """ Entry point and table of running system. """
    if sys.platform.startswith("linux"):
        try:
            return read_sysfs(logger=logger)
        except SourceUnavailable as e:
            sysfs_error = e
            if logger is not None:
                logger.info("%s, trying %s" % (e.message, DEVMEM))
        try:
            return read_devmem(logger=logger)
        except SourceUnavailable as e:
            raise SourceUnavailable("%s; %s" % (sysfs_error.message, e.message))
    if sys.platform == "win32":
        return read_windows()
    raise SourceUnavailable("Unsupported platform %s" % (sys.platform,))

def read(logger = None, lenient_tail = True): # type: (Optional[Logger], bool) -> Table
    ep, table = read_system(logger)
    return decoder.decode(table, ep, logger, lenient_tail)
