import pytest

from dmitri.logging import StructureNotPresent
from dmitri.types import Bitmask, EntryPoint, Header, Structure, Table

from helpers import structure

def test_integer_accessors():
    s = structure(0x80, 1, b"\x01\x02\x03\x04\x05", ["a", "b"])
    assert s.byte(0) == 0x01
    assert s.byte(4) == 0x05
    assert s.word(0) == 0x0201
    assert s.word(3) == 0x0504
    assert s.dword(0) == 0x04030201
    assert s.dword(1) == 0x05040302

def test_accessors_never_cross_formatted_area():
    s = structure(0x80, 1, b"\x01\x02\x03\x04\x05")
    assert s.byte(5) == 0
    assert s.word(4) == 0
    assert s.dword(2) == 0
    assert s.qword(0) == 0
    assert s.byte(-1) == 0
    assert s.raw(1, 2) == b"\x02\x03"
    assert s.raw(4, 2) is None
    assert s.raw(-1, 1) is None

def test_accessors_on_header_only_structure():
    s = structure(127, 9)
    for width_read in (s.byte, s.word, s.dword, s.qword):
        for offset in range(0, 8):
            assert width_read(offset) == 0

def test_string_accessor():
    s = structure(0x80, 1, b"", ["first", "second"])
    assert s.string(0) == ""
    assert s.string(1) == "first"
    assert s.string(2) == "second"
    assert s.string(3) == ""
    assert s.string(255) == ""
    assert structure(0x80, 1).string(0) == ""

def test_structure_is_immutable_value():
    s = Structure(Header(2, 6, 0x10), bytearray(b"\x01\x02"), ["x"])
    assert isinstance(s.data, bytes)
    assert s.strings == ("x",)
    assert s.type == 2 and s.handle == 0x10 and s.length == 6
    assert s == structure(2, 0x10, b"\x01\x02", ("x",))

def test_header_pack_unpack():
    h = Header.unpack(b"\xff\x01\x1b\x34\x12", 1)
    assert h == Header(1, 0x1B, 0x1234)
    assert h.pack() == b"\x01\x1b\x34\x12"

def test_table_lookup():
    table = Table([structure(0, 0), structure(17, 1), structure(17, 2), structure(127, 3)])
    assert len(table) == 4
    assert [s.handle for s in table.find(17)] == [1, 2]
    assert table.find(4) == []
    assert table.get(17).handle == 1
    with pytest.raises(StructureNotPresent) as e:
        table.get(4)
    assert e.value.type == 4
    assert table.complete
    assert table.check() is table

def test_entry_point_version_string():
    ep3 = EntryPoint.resolved(3, 4, 0, 0x1000)
    assert ep3.kind == EntryPoint.SMBIOS3_64
    assert str(ep3) == "SMBIOS 3.4.0"
    ep2 = EntryPoint.resolved(2, 8, 0, 0x1000)
    assert ep2.kind == EntryPoint.LEGACY32
    assert str(ep2) == "SMBIOS 2.8"
    assert ep2.version == (2, 8)
    assert ep2.checksum_valid

def test_bitmask():
    b = Bitmask(0b1010, {1: "one", 2: "two", 3: "three"})
    assert b.has(0b0010)
    assert not b.has(0b0100)
    assert b.bit(3)
    assert not b.bit(0)
    assert b.matches(0b1110, 0b1010)
    assert not b.matches(0b1110, 0b0110)
    assert b.names() == ["one", "three"]
    assert int(b) == 10
    assert b == 10
    assert b == Bitmask(10)
    assert b != 11
    assert b & 0b1000 == 0b1000
