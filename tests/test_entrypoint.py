import pytest

from dmitri.entrypoint import parse, parse_legacy, parse_smbios3, scan
from dmitri.encoder import encode_entry_point
from dmitri.logging import (ChecksumError, DecoderError, EntryPointError,
                            EntryPointNotFound, NullLogger, StdErrLogger)
from dmitri.types import EntryPoint
from dmitri.utils import checksum, checksum_ok

from helpers import legacy_entry_point, smbios3_entry_point

def test_checksum_helpers():
    data = bytearray(b"\x10\x20\x30\x00")
    data[3] = checksum(data)
    assert checksum_ok(data)
    assert sum(data) % 256 == 0

def test_legacy_entry_point(logger):
    ep = legacy_entry_point(0x1234, count=50)
    raw = encode_entry_point(ep)
    assert len(raw) == 0x1F
    assert raw.startswith(b"_SM_") and raw[0x10:0x15] == b"_DMI_"
    assert checksum_ok(raw) and checksum_ok(raw[0x10:0x1F])
    parsed = parse(raw, logger)
    assert parsed == ep
    assert parsed.bcd_revision == 0x28
    assert logger.warnings == []

def test_smbios3_entry_point(logger):
    ep = smbios3_entry_point(0x2000)
    raw = encode_entry_point(ep)
    assert len(raw) == 0x18
    parsed = parse(raw, logger)
    assert parsed == ep
    assert str(parsed) == "SMBIOS 3.4.0"
    assert parsed.table_address == 0x7E000000

@pytest.mark.parametrize("ep", [legacy_entry_point(0x100), smbios3_entry_point(0x100)])
def test_single_byte_flip_invalidates_entry_point(ep):
    raw = encode_entry_point(ep)
    anchor_length = 5 if ep.kind == EntryPoint.SMBIOS3_64 else 4
    for i in range(len(raw)):
        flipped = bytearray(raw)
        flipped[i] ^= 0xFF
        assert not checksum_ok(flipped)
        expected = EntryPointNotFound if i < anchor_length else ChecksumError
        with pytest.raises(expected):
            parse(flipped, NullLogger())

def test_legacy_short_length_accepted_with_warning(logger):
    raw = encode_entry_point(legacy_entry_point(0x100))
    raw[0x05] = 0x1E
    raw[0x04] = 0
    raw[0x04] = checksum(raw[:0x1E])
    ep = parse_legacy(raw, logger)
    assert ep.entry_length == 0x1E
    assert len(logger.warnings) == 1
    assert "0x1E" in logger.warnings[0]

def test_legacy_truncated():
    raw = encode_entry_point(legacy_entry_point(0x100))
    with pytest.raises(ChecksumError):
        parse_legacy(raw[:0x1E], NullLogger())

def test_legacy_intermediate_checksum():
    raw = encode_entry_point(legacy_entry_point(0x100))
    # Keep outer checksum valid, break the intermediate one
    raw[0x16] += 1
    raw[0x08] -= 1
    assert checksum_ok(raw)
    with pytest.raises(ChecksumError) as e:
        parse_legacy(raw, NullLogger())
    assert "intermediate" in e.value.message

def test_version_inconsistent_with_anchor():
    raw = encode_entry_point(smbios3_entry_point(0x100, major=2, minor=8))
    with pytest.raises(DecoderError) as e:
        parse_smbios3(raw, StdErrLogger())
    assert not isinstance(e.value, EntryPointError)
    # Continues when logger tolerates it
    assert parse_smbios3(raw, NullLogger()).major == 2

def test_smbios3_unknown_revision(logger):
    ep = smbios3_entry_point(0x100)
    ep.entry_revision = 2
    parsed = parse_smbios3(encode_entry_point(ep), logger)
    assert parsed.entry_revision == 2
    assert len(logger.warnings) == 1

def test_parse_without_anchor():
    with pytest.raises(EntryPointNotFound):
        parse(b"\x00" * 32)

def _region(*placements):
    region = bytearray(0x10000)
    for offset, ep in placements:
        raw = encode_entry_point(ep)
        region[offset:offset + len(raw)] = raw
    return region

def test_scan_prefers_64bit_entry_point(logger):
    region = _region((0x100, legacy_entry_point(0x100)), (0x800, smbios3_entry_point(0x200)))
    ep = scan(region, 0xF0000, logger=logger)
    assert ep.kind == EntryPoint.SMBIOS3_64
    assert ep.table_length == 0x200

def test_scan_legacy_only(logger):
    ep = scan(_region((0x100, legacy_entry_point(0x100))), 0xF0000, logger=logger)
    assert ep.kind == EntryPoint.LEGACY32

def test_scan_alignment(logger):
    region = _region((0x108, legacy_entry_point(0x100)))
    with pytest.raises(EntryPointNotFound):
        scan(region, 0xF0000, logger=logger)
    assert scan(region, 0xF0000, aligned=False, logger=logger).kind == EntryPoint.LEGACY32
    # Alignment is physical, not relative to region start
    assert scan(region, 0xF0008, logger=logger).kind == EntryPoint.LEGACY32

def test_scan_skips_corrupt_anchor(logger):
    region = _region((0x100, legacy_entry_point(0x100)), (0x800, smbios3_entry_point(0x200)))
    region[0x810] ^= 0x01
    ep = scan(region, 0xF0000, logger=logger)
    assert ep.kind == EntryPoint.LEGACY32
    assert len(logger.warnings) == 1

def test_scan_only_corrupt_anchor(logger):
    region = _region((0x800, smbios3_entry_point(0x200)))
    region[0x810] ^= 0x01
    with pytest.raises(ChecksumError):
        scan(region, 0xF0000, logger=logger)

def test_scan_empty_region(logger):
    with pytest.raises(EntryPointNotFound):
        scan(bytes(0x10000), 0xF0000, logger=logger)
