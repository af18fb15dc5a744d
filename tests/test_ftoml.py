from collections import OrderedDict

import pytest

from dmitri import encoder, ftoml
from dmitri.decoder import decode
from dmitri.fields import table_config
from dmitri.logging import DecoderError

from helpers import raw_table, sample_structures, smbios3_entry_point, structure

def _table(logger, structures = None):
    raw = raw_table(sample_structures() if structures is None else structures)
    return raw, decode(raw, smbios3_entry_point(len(raw)), logger)

def test_dump_format(logger):
    raw, table = _table(logger)
    text = ftoml.dumps_table(table, logger).decode('utf8')
    assert "[smbios]" in text
    assert text.count("[[structure]]") == 4
    assert "[structure.fields]" in text
    assert 'data = h"010203"' in text
    assert 'vendor = "ACME"' in text

def test_load_hex_values():
    cfg = ftoml.load(b'[[structure]]\ntype = 200\nhandle = 1\ndata = h"0aFF"\nstrings = [ "x" ]\n')
    assert isinstance(cfg, OrderedDict)
    assert cfg["structure"][0]["data"] == b"\x0a\xff"
    assert cfg["structure"][0]["strings"] == ["x"]

def test_round_trip(logger):
    structures = sample_structures() + [structure(11, 9, b"\x02", ["one", "two"]), structure(0x81, 10)]
    raw, table = _table(logger, structures)
    ep, data = ftoml.loads_table(ftoml.dumps_table(table, logger), logger)
    assert bytes(data) == raw
    assert ep.kind == table.entry_point.kind
    assert ep.version == table.entry_point.version
    assert ep.table_address == table.entry_point.table_address

def test_round_trip_without_fields(logger):
    raw, table = _table(logger)
    cfg = ftoml.load(ftoml.dump(table_config(table, logger, fields=False)))
    assert "fields" not in cfg["structure"][0]
    assert bytes(encoder.encode(cfg, logger)[1]) == raw

def test_round_trip_undecodable_strings(logger):
    structures = sample_structures() + [structure(11, 7, b"\x01", ["caf\udce9"]),
                                        structure(11, 8, b"\x03", ["plain", "\udcff\udcfe", "last"])]
    raw, table = _table(logger, structures)
    text = ftoml.dumps_table(table, logger)
    assert b'r"636166e9"' in text
    assert b'[ "plain", r"fffe", "last",]' in text
    ep, data = ftoml.loads_table(text, logger)
    assert bytes(data) == raw

def test_load_escaped_string():
    cfg = ftoml.load(b'[[structure]]\ntype = 11\nhandle = 1\nstrings = [ r"636166e9", "x" ]\n')
    assert cfg["structure"][0]["strings"] == ["caf\udce9", "x"]

@pytest.mark.parametrize("text", [
    b'data = h"zz"\n',
    b'data = h[1]\n',
    b'name = r"0"\n',
    b'name = "unterminated\n',
    b'name = "\xff"\n',
])
def test_invalid_toml(text):
    with pytest.raises(DecoderError):
        ftoml.load(text)
