import pytest

from dmitri.decoder import Decoder, decode
from dmitri.encoder import encode_table
from dmitri.logging import MalformedStructure
from dmitri.types import EntryPoint

from helpers import CollectingLogger, legacy_entry_point, raw_table, sample_structures, smbios3_entry_point, structure

def test_segments_structures_in_order(logger):
    structures = [structure(t, h, bytes([h] * (h + 1)), ["s%d" % i for i in range(h)])
                  for t, h in [(0, 0x10), (1, 3), (0x80, 7), (17, 2)]]
    table = decode(raw_table(structures), logger=logger)
    assert table.complete
    assert len(table) == 5
    assert list(table)[:4] == structures
    assert [s.handle for s in table] == [0x10, 3, 7, 2, 0x11]
    assert table[-1].type == 127
    assert logger.warnings == []

def test_vendor_scenario(logger):
    data = b"\x00\x12\x00\x00" + bytes(14) + b"VENDOR\x00" + b"\x00"
    table = decode(data, logger=logger)
    assert table.complete
    assert len(table) == 1
    s = table[0]
    assert s.type == 0
    assert s.length == 18
    assert s.strings == ("VENDOR",)

def test_empty_string_table(logger):
    table = decode(b"\x80\x06\x01\x00\xaa\xbb\x00\x00", logger=logger)
    assert table[0].data == b"\xaa\xbb"
    assert table[0].strings == ()

def test_all_zero_buffer_terminates(logger):
    table = decode(bytes(1000), logger=logger)
    assert len(table) == 0
    assert isinstance(table.error, MalformedStructure)
    with pytest.raises(MalformedStructure):
        table.check()

def test_all_ones_buffer_terminates(logger):
    table = decode(b"\xff" * 1000, logger=logger)
    assert len(table) == 0
    assert not table.complete

def test_double_null_pairs_terminate(logger):
    # Structures of length 4 with empty string tables, back to back
    data = b"\x80\x04\x00\x00\x00\x00" * 200
    table = decode(data, logger=logger)
    assert len(table) == 200
    assert table.complete

def test_truncated_formatted_area(logger):
    structures = sample_structures()
    raw = raw_table(structures)
    first = len(raw_table(structures[:1], end_of_table=False))
    table = decode(raw[:first + 6], logger=logger)
    assert list(table) == structures[:1]
    assert isinstance(table.error, MalformedStructure)
    assert table.error.offset == first
    assert len(logger.warnings) == 1

def test_truncated_header(logger):
    raw = raw_table([structure(0x80, 1, b"\x01")], end_of_table=False)
    table = decode(raw + b"\x80\x04", logger=logger)
    assert len(table) == 1
    assert table.error.offset == len(raw)

def test_invalid_length(logger):
    raw = raw_table([structure(0x80, 1, b"\x01")], end_of_table=False)
    table = decode(raw + b"\x80\x02\x00\x00\x00\x00", logger=logger)
    assert len(table) == 1
    assert "invalid length" in table.error.message

def test_unterminated_string_table(logger):
    data = b"\x80\x04\x01\x00ABC"
    for lenient in (True, False):
        table = decode(data, logger=logger, lenient_tail=lenient)
        assert len(table) == 0
        assert "Unterminated" in table.error.message

def test_lenient_tail_single_null(logger):
    raw = raw_table([structure(0x80, 1, b"\x01", ["A", "B"])], end_of_table=False)
    assert raw.endswith(b"B\x00\x00")
    table = decode(raw[:-1], logger=logger)
    assert table.complete
    assert table[0].strings == ("A", "B")
    assert len(logger.infos) == 1

    strict = decode(raw[:-1], logger=logger, lenient_tail=False)
    assert len(strict) == 0
    assert isinstance(strict.error, MalformedStructure)

def test_lenient_tail_missing_string_table(logger):
    raw = raw_table([structure(0x80, 1, b"\x01")], end_of_table=False)
    for cut in (1, 2):
        table = decode(raw[:-cut], logger=logger)
        assert table.complete
        assert table[0].strings == ()
        assert not decode(raw[:-cut], logger=logger, lenient_tail=False).complete

def test_stops_at_end_of_table(logger):
    raw = raw_table(sample_structures())
    table = decode(raw + b"garbage after end", logger=logger)
    assert table.complete
    assert table[-1].type == 127
    assert len(table) == 4
    assert len(logger.infos) == 1

def test_declared_length_bounds_table(logger):
    structures = sample_structures()
    raw = raw_table(structures)
    bound = len(raw_table(structures[:2], end_of_table=False))
    table = decode(raw, smbios3_entry_point(bound), logger)
    assert table.complete
    assert list(table) == structures[:2]

def test_declared_length_beyond_buffer(logger):
    raw = raw_table(sample_structures())
    table = decode(raw, legacy_entry_point(len(raw) + 100), logger)
    assert table.complete
    assert len(table) == 4
    assert len(logger.warnings) == 1
    # Maximum size of a 64-bit entry point is only an upper bound
    logger = CollectingLogger()
    decode(raw, smbios3_entry_point(len(raw) + 100), logger)
    assert logger.warnings == []

def test_legacy_structure_count_bounds_table(logger):
    raw = raw_table(sample_structures())
    table = decode(raw, legacy_entry_point(len(raw), count=2), logger)
    assert table.complete
    assert len(table) == 2
    assert len(logger.infos) == 1

def test_table_keeps_entry_point(logger):
    raw = raw_table(sample_structures())
    ep = smbios3_entry_point(len(raw))
    table = decode(raw, ep, logger)
    assert table.entry_point is ep

def test_idempotence(logger):
    raw = raw_table(sample_structures())
    d = Decoder(logger)
    assert d.decode(raw) == d.decode(raw)
    assert d.decode(raw[:40]) == d.decode(raw[:40])

def test_round_trip(logger):
    structures = sample_structures() + [
        structure(11, 0x20, b"\x02", ["caf\udce9", "über"]),
        structure(0xFE, 0x21, bytes(range(251))),
    ]
    raw = raw_table(structures)
    table = decode(raw, logger=logger)
    assert list(table)[:-1] == structures
    assert bytes(encode_table(table.structures, logger=logger)) == raw

def test_undecodable_bytes_survive(logger):
    data = b"\x0b\x05\x01\x00\x01caf\xe9\x00\x00"
    table = decode(data, logger=logger)
    assert table[0].strings == ("caf\udce9",)
    assert bytes(encode_table(table.structures, logger=logger)) == data
