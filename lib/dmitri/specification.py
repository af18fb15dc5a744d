from .utils import KIB, MIB, GIB

MYPY = False
if MYPY:
    from typing import Dict, Optional, Tuple

# {{{ Entry point constants
SM_ANCHOR  = b"_SM_"
DMI_ANCHOR = b"_DMI_"
SM3_ANCHOR = b"_SM3_"

LEGACY_ENTRY_LENGTH  = 0x1F
LEGACY_ENTRY_LENGTH_BUGGY = 0x1E # SMBIOS 2.1 tables as produced by some firmware
SM3_ENTRY_LENGTH     = 0x18

""" Legacy BIOS area searched for entry point anchors. """
SCAN_BASE  = 0xF0000
SCAN_SIZE  = 0x10000
SCAN_ALIGN = 16
# }}}

""" Structure type names, DSP0134 3.9.0 """
TYPE_NAMES = {
    0:   "BIOS Information",
    1:   "System Information",
    2:   "Baseboard Information",
    3:   "System Enclosure",
    4:   "Processor Information",
    5:   "Memory Controller Information",
    6:   "Memory Module Information",
    7:   "Cache Information",
    8:   "Port Connector Information",
    9:   "System Slots",
    10:  "On Board Devices Information",
    11:  "OEM Strings",
    12:  "System Configuration Options",
    13:  "BIOS Language Information",
    14:  "Group Associations",
    15:  "System Event Log",
    16:  "Physical Memory Array",
    17:  "Memory Device",
    18:  "32-bit Memory Error Information",
    19:  "Memory Array Mapped Address",
    20:  "Memory Device Mapped Address",
    21:  "Built-in Pointing Device",
    22:  "Portable Battery",
    23:  "System Reset",
    24:  "Hardware Security",
    25:  "System Power Controls",
    26:  "Voltage Probe",
    27:  "Cooling Device",
    28:  "Temperature Probe",
    29:  "Electrical Current Probe",
    30:  "Out-of-Band Remote Access",
    31:  "Boot Integrity Services Entry Point",
    32:  "System Boot Information",
    33:  "64-bit Memory Error Information",
    34:  "Management Device",
    35:  "Management Device Component",
    36:  "Management Device Threshold Data",
    37:  "Memory Channel",
    38:  "IPMI Device Information",
    39:  "System Power Supply",
    40:  "Additional Information",
    41:  "Onboard Devices Extended Information",
    42:  "Management Controller Host Interface",
    43:  "TPM Device",
    44:  "Processor Additional Information",
    45:  "Firmware Inventory Information",
    46:  "String Property",
    126: "Inactive",
    127: "End-of-Table",
} # type: Dict[int, str]

def type_name(t): # type: (int) -> str
    try:
        return TYPE_NAMES[t]
    except KeyError:
        return "OEM-specific" if t >= 128 else "Unknown"

# {{{ Bit names
BIOS_CHARACTERISTICS = {
    2:  "Unknown",
    3:  "BIOS characteristics not supported",
    4:  "ISA is supported",
    5:  "MCA is supported",
    6:  "EISA is supported",
    7:  "PCI is supported",
    8:  "PC Card (PCMCIA) is supported",
    9:  "Plug and Play is supported",
    10: "APM is supported",
    11: "BIOS is upgradeable",
    12: "BIOS shadowing is allowed",
    13: "VL-VESA is supported",
    14: "ESCD support is available",
    15: "Boot from CD is supported",
    16: "Selectable boot is supported",
    17: "BIOS ROM is socketed",
    18: "Boot from PC Card (PCMCIA) is supported",
    19: "EDD is supported",
    20: "Japanese floppy for NEC 9800 1.2 MB is supported (int 13h)",
    21: "Japanese floppy for Toshiba 1.2 MB is supported (int 13h)",
    22: "5.25\"/360 kB floppy services are supported (int 13h)",
    23: "5.25\"/1.2 MB floppy services are supported (int 13h)",
    24: "3.5\"/720 kB floppy services are supported (int 13h)",
    25: "3.5\"/2.88 MB floppy services are supported (int 13h)",
    26: "Print screen service is supported (int 5h)",
    27: "8042 keyboard services are supported (int 9h)",
    28: "Serial services are supported (int 14h)",
    29: "Printer services are supported (int 17h)",
    30: "CGA/mono video services are supported (int 10h)",
    31: "NEC PC-98",
}

BIOS_CHARACTERISTICS_EXT1 = {
    0: "ACPI is supported",
    1: "USB legacy is supported",
    2: "AGP is supported",
    3: "I2O boot is supported",
    4: "LS-120 boot is supported",
    5: "ATAPI Zip drive boot is supported",
    6: "IEEE 1394 boot is supported",
    7: "Smart battery is supported",
}

BIOS_CHARACTERISTICS_EXT2 = {
    0: "BIOS boot specification is supported",
    1: "Function key-initiated network boot is supported",
    2: "Targeted content distribution is supported",
    3: "UEFI is supported",
    4: "System is a virtual machine",
    5: "Manufacturing mode is supported",
    6: "Manufacturing mode is enabled",
}

PROCESSOR_CHARACTERISTICS = {
    1: "Unknown",
    2: "64-bit capable",
    3: "Multi-Core",
    4: "Hardware Thread",
    5: "Execute Protection",
    6: "Enhanced Virtualization",
    7: "Power/Performance Control",
    8: "128-bit Capable",
    9: "Arm64 SoC ID",
}

CACHE_SRAM_TYPE = {
    0: "Other",
    1: "Unknown",
    2: "Non-Burst",
    3: "Burst",
    4: "Pipeline Burst",
    5: "Synchronous",
    6: "Asynchronous",
}

MEMORY_TYPE_DETAIL = {
    1:  "Other",
    2:  "Unknown",
    3:  "Fast-paged",
    4:  "Static column",
    5:  "Pseudo-static",
    6:  "RAMBUS",
    7:  "Synchronous",
    8:  "CMOS",
    9:  "EDO",
    10: "Window DRAM",
    11: "Cache DRAM",
    12: "Non-volatile",
    13: "Registered (Buffered)",
    14: "Unbuffered (Unregistered)",
    15: "LRDIMM",
}

MEMORY_OPERATING_MODE = {
    1: "Other",
    2: "Unknown",
    3: "Volatile memory",
    4: "Byte-accessible persistent memory",
    5: "Block-accessible persistent memory",
}
# }}}

# {{{ Specification types
class FieldSpec(object):
    """ Fixed width field of a formatted area. Offset is the structure
        offset as printed in DSP0134, i.e. header occupies 0x00-0x03. """
    name   = None # type: str
    offset = None # type: int
    width  = None # type: int
    def __init__(self, name, offset): # type: (str, int) -> None
        self.name   = name
        self.offset = offset

    @property
    def end(self): # type: () -> int
        return self.offset + self.width

class Byte(FieldSpec):
    width = 1

class Word(FieldSpec):
    width = 2

class DWord(FieldSpec):
    width = 4

class QWord(FieldSpec):
    width = 8

class Str(FieldSpec):
    """ Byte index into string table. """
    width = 1

class Flags(FieldSpec):
    """ Bit field, decoded as Bitmask. """
    bits = None # type: Dict[int, str]
    def __init__(self, name, offset, width, bits): # type: (str, int, int, Dict[int, str]) -> None
        super(Flags, self).__init__(name, offset)
        self.width = width
        self.bits  = bits

class Uuid(FieldSpec):
    """ 16 byte UUID, first three fields little-endian since SMBIOS 2.6. """
    width = 16

class Unit(object):
    """ Resolves raw value to base units. When `shift` is set, bits from
        `shift` upwards select a multiplier; selectors without multiplier are
        reserved and resolve to None. `bias` is added before multiplying. """
    multipliers = None # type: Tuple[int, ...]
    mask        = None # type: Optional[int]
    shift       = None # type: Optional[int]
    bias        = None # type: int
    def __init__(self, multipliers = (1,), mask = None, shift = None, bias = 0):
        # type: (Tuple[int, ...], Optional[int], Optional[int], int) -> None
        self.multipliers = multipliers
        self.mask        = mask
        self.shift       = shift
        self.bias        = bias

    def resolve(self, raw): # type: (int) -> Optional[int]
        selector = 0 if self.shift is None else raw >> self.shift
        if selector >= len(self.multipliers):
            return None
        value = raw if self.mask is None else raw & self.mask
        return (value + self.bias) * self.multipliers[selector]

IDENTITY = Unit()

class Promoted(object):
    """ Derived value of `primary` field. When primary holds `sentinel`,
        value of `extended` field (in its own unit) is used instead.
        Values listed in `unknown` make the derived value unknown (None). """
    name             = None # type: str
    primary          = None # type: str
    extended         = None # type: Optional[str]
    sentinel         = None # type: Optional[int]
    unit             = None # type: Unit
    extended_unit    = None # type: Unit
    unknown          = None # type: Tuple[int, ...]
    extended_unknown = None # type: Tuple[int, ...]
    def __init__(self, name, primary, extended = None, sentinel = None, unit = IDENTITY,
                 extended_unit = None, unknown = (), extended_unknown = ()):
        # type: (str, str, Optional[str], Optional[int], Unit, Optional[Unit], Tuple[int, ...], Tuple[int, ...]) -> None
        self.name             = name
        self.primary          = primary
        self.extended         = extended
        self.sentinel         = sentinel
        self.unit             = unit
        self.extended_unit    = extended_unit if extended_unit is not None else unit
        self.unknown          = unknown
        self.extended_unknown = extended_unknown

class Revision(object):
    """ Fields introduced by one specification revision. They are present
        only when structure length is at least `minlength`. """
    version   = None # type: str
    minlength = None # type: int
    fields    = None # type: Tuple[FieldSpec, ...]
    def __init__(self, version, minlength, fields): # type: (str, int, Tuple[FieldSpec, ...]) -> None
        for f in fields:
            assert f.offset >= 4 and f.end <= minlength, \
                "%s: field %s exceeds minimum length 0x%02X" % (version, f.name, minlength)
        self.version   = version
        self.minlength = minlength
        self.fields    = fields

class StructureSpec(object):
    """ Layout of one structure type. First revision is the base one,
        minimum lengths of following revisions never decrease. """
    type      = None # type: int
    name      = None # type: str
    revisions = None # type: Tuple[Revision, ...]
    derived   = None # type: Tuple[Promoted, ...]
    def __init__(self, type, revisions, derived = ()): # type: (int, Tuple[Revision, ...], Tuple[Promoted, ...]) -> None
        lengths = [r.minlength for r in revisions]
        assert lengths == sorted(lengths)
        names = [f.name for r in revisions for f in r.fields]
        assert len(names) == len(set(names))
        for d in derived:
            assert d.primary in names and (d.extended is None or d.extended in names)
        self.type      = type
        self.name      = type_name(type)
        self.revisions = revisions
        self.derived   = derived

    @property
    def minlength(self): # type: () -> int
        return self.revisions[0].minlength
# }}}

""" Representative structure layouts. """
BIOS_INFORMATION = StructureSpec(0, (
        Revision("2.0", 0x12, (
            Str("vendor", 0x04),
            Str("version", 0x05),
            Word("starting_segment", 0x06),
            Str("release_date", 0x08),
            Byte("rom_size", 0x09),
            Flags("characteristics", 0x0A, 8, BIOS_CHARACTERISTICS),
        )),
        # 2.4 added 6 bytes at once, firmware often fills them partially
        Revision("2.4", 0x13, (
            Flags("characteristics_ext1", 0x12, 1, BIOS_CHARACTERISTICS_EXT1),
        )),
        Revision("2.4", 0x14, (
            Flags("characteristics_ext2", 0x13, 1, BIOS_CHARACTERISTICS_EXT2),
        )),
        Revision("2.4", 0x16, (
            Byte("bios_major_release", 0x14),
            Byte("bios_minor_release", 0x15),
        )),
        Revision("2.4", 0x18, (
            Byte("ec_major_release", 0x16),
            Byte("ec_minor_release", 0x17),
        )),
        Revision("3.1", 0x1A, (
            Word("extended_rom_size", 0x18),
        )),
    ), (
        Promoted("rom_size_bytes", "rom_size", "extended_rom_size", 0xFF,
            unit=Unit((64 * KIB,), bias=1),
            extended_unit=Unit((MIB, GIB), mask=0x3FFF, shift=14)),
    ))

SYSTEM_INFORMATION = StructureSpec(1, (
        Revision("2.0", 0x08, (
            Str("manufacturer", 0x04),
            Str("product_name", 0x05),
            Str("version", 0x06),
            Str("serial_number", 0x07),
        )),
        Revision("2.1", 0x19, (
            Uuid("uuid", 0x08),
            Byte("wakeup_type", 0x18),
        )),
        Revision("2.4", 0x1B, (
            Str("sku_number", 0x19),
            Str("family", 0x1A),
        )),
    ))

PROCESSOR_INFORMATION = StructureSpec(4, (
        Revision("2.0", 0x1A, (
            Str("socket_designation", 0x04),
            Byte("processor_type", 0x05),
            Byte("family", 0x06),
            Str("manufacturer", 0x07),
            QWord("processor_id", 0x08),
            Str("version", 0x10),
            Byte("voltage", 0x11),
            Word("external_clock", 0x12),
            Word("max_speed", 0x14),
            Word("current_speed", 0x16),
            Byte("status", 0x18),
            Byte("upgrade", 0x19),
        )),
        Revision("2.1", 0x20, (
            Word("l1_cache_handle", 0x1A),
            Word("l2_cache_handle", 0x1C),
            Word("l3_cache_handle", 0x1E),
        )),
        Revision("2.3", 0x23, (
            Str("serial_number", 0x20),
            Str("asset_tag", 0x21),
            Str("part_number", 0x22),
        )),
        Revision("2.5", 0x28, (
            Byte("core_count", 0x23),
            Byte("core_enabled", 0x24),
            Byte("thread_count", 0x25),
            Flags("characteristics", 0x26, 2, PROCESSOR_CHARACTERISTICS),
        )),
        Revision("2.6", 0x2A, (
            Word("family2", 0x28),
        )),
        Revision("3.0", 0x30, (
            Word("core_count2", 0x2A),
            Word("core_enabled2", 0x2C),
            Word("thread_count2", 0x2E),
        )),
        Revision("3.6", 0x32, (
            Word("thread_enabled", 0x30),
        )),
    ), (
        Promoted("processor_family", "family", "family2", 0xFE),
        Promoted("cores", "core_count", "core_count2", 0xFF,
            unknown=(0,), extended_unknown=(0, 0xFFFF)),
        Promoted("cores_enabled", "core_enabled", "core_enabled2", 0xFF,
            unknown=(0,), extended_unknown=(0, 0xFFFF)),
        Promoted("threads", "thread_count", "thread_count2", 0xFF,
            unknown=(0,), extended_unknown=(0, 0xFFFF)),
    ))

_CACHE_SIZE  = Unit((KIB, 64 * KIB), mask=0x7FFF, shift=15)
_CACHE_SIZE2 = Unit((KIB, 64 * KIB), mask=0x7FFFFFFF, shift=31)

CACHE_INFORMATION = StructureSpec(7, (
        Revision("2.0", 0x0F, (
            Str("socket_designation", 0x04),
            Word("configuration", 0x05),
            Word("maximum_size", 0x07),
            Word("installed_size", 0x09),
            Flags("supported_sram_type", 0x0B, 2, CACHE_SRAM_TYPE),
            Flags("current_sram_type", 0x0D, 2, CACHE_SRAM_TYPE),
        )),
        Revision("2.1", 0x13, (
            Byte("speed", 0x0F),
            Byte("error_correction_type", 0x10),
            Byte("system_cache_type", 0x11),
            Byte("associativity", 0x12),
        )),
        Revision("3.1", 0x1B, (
            DWord("maximum_size2", 0x13),
            DWord("installed_size2", 0x17),
        )),
    ), (
        Promoted("maximum_size_bytes", "maximum_size", "maximum_size2", 0xFFFF,
            unit=_CACHE_SIZE, extended_unit=_CACHE_SIZE2),
        Promoted("installed_size_bytes", "installed_size", "installed_size2", 0xFFFF,
            unit=_CACHE_SIZE, extended_unit=_CACHE_SIZE2),
    ))

PHYSICAL_MEMORY_ARRAY = StructureSpec(16, (
        Revision("2.1", 0x0F, (
            Byte("location", 0x04),
            Byte("use", 0x05),
            Byte("error_correction", 0x06),
            DWord("maximum_capacity", 0x07),
            Word("error_information_handle", 0x0B),
            Word("number_of_devices", 0x0D),
        )),
        Revision("2.7", 0x17, (
            QWord("extended_maximum_capacity", 0x0F),
        )),
    ), (
        Promoted("maximum_capacity_bytes", "maximum_capacity", "extended_maximum_capacity", 0x80000000,
            unit=Unit((KIB,)), extended_unit=IDENTITY),
    ))

_SPEED = Unit((1,), mask=0x7FFFFFFF)

MEMORY_DEVICE = StructureSpec(17, (
        Revision("2.1", 0x15, (
            Word("physical_memory_array_handle", 0x04),
            Word("error_information_handle", 0x06),
            Word("total_width", 0x08),
            Word("data_width", 0x0A),
            Word("size", 0x0C),
            Byte("form_factor", 0x0E),
            Byte("device_set", 0x0F),
            Str("device_locator", 0x10),
            Str("bank_locator", 0x11),
            Byte("memory_type", 0x12),
            Flags("type_detail", 0x13, 2, MEMORY_TYPE_DETAIL),
        )),
        Revision("2.3", 0x1B, (
            Word("speed", 0x15),
            Str("manufacturer", 0x17),
            Str("serial_number", 0x18),
            Str("asset_tag", 0x19),
            Str("part_number", 0x1A),
        )),
        Revision("2.6", 0x1C, (
            Byte("attributes", 0x1B),
        )),
        Revision("2.7", 0x22, (
            DWord("extended_size", 0x1C),
            Word("configured_speed", 0x20),
        )),
        Revision("2.8", 0x28, (
            Word("minimum_voltage", 0x22),
            Word("maximum_voltage", 0x24),
            Word("configured_voltage", 0x26),
        )),
        Revision("3.2", 0x54, (
            Byte("memory_technology", 0x28),
            Flags("operating_mode_capability", 0x29, 2, MEMORY_OPERATING_MODE),
            Str("firmware_version", 0x2B),
            Word("module_manufacturer_id", 0x2C),
            Word("module_product_id", 0x2E),
            Word("subsystem_controller_manufacturer_id", 0x30),
            Word("subsystem_controller_product_id", 0x32),
            QWord("non_volatile_size", 0x34),
            QWord("volatile_size", 0x3C),
            QWord("cache_size", 0x44),
            QWord("logical_size", 0x4C),
        )),
        Revision("3.3", 0x5C, (
            DWord("extended_speed", 0x54),
            DWord("extended_configured_speed", 0x58),
        )),
        Revision("3.7", 0x64, (
            Word("pmic0_manufacturer_id", 0x5C),
            Word("pmic0_revision", 0x5E),
            Word("rcd_manufacturer_id", 0x60),
            Word("rcd_revision", 0x62),
        )),
    ), (
        Promoted("size_bytes", "size", "extended_size", 0x7FFF,
            unit=Unit((MIB, KIB), mask=0x7FFF, shift=15),
            extended_unit=Unit((MIB,), mask=0x7FFFFFFF),
            unknown=(0xFFFF,)),
        Promoted("speed_mts", "speed", "extended_speed", 0xFFFF,
            extended_unit=_SPEED, unknown=(0,), extended_unknown=(0,)),
        Promoted("configured_speed_mts", "configured_speed", "extended_configured_speed", 0xFFFF,
            extended_unit=_SPEED, unknown=(0,), extended_unknown=(0,)),
    ))

END_OF_TABLE_SPEC = StructureSpec(127, (
        Revision("2.0", 0x04, ()),
    ))

STRUCTURE_SPECS = (
    BIOS_INFORMATION,
    SYSTEM_INFORMATION,
    PROCESSOR_INFORMATION,
    CACHE_INFORMATION,
    PHYSICAL_MEMORY_ARRAY,
    MEMORY_DEVICE,
    END_OF_TABLE_SPEC,
) # type: Tuple[StructureSpec, ...]
