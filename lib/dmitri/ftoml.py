""" TOML representation of tables.

    Raw bytes are written as hexadecimal strings prefixed with `h`
    (e.g. ``data = h"0102"``). Strings that are not valid UTF-8 (kept by
    decoder as surrogate escapes) are written as hexadecimal of their
    original bytes prefixed with `r`. Bitmask values are plain integers
    and unknown (None) values are omitted, as TOML has no null. """

import binascii
from collections import OrderedDict

import toml

from .decoder import STRING_ENCODING, STRING_ERRORS
from .logging import *
from .types   import *
from .fields  import table_config
from .        import encoder

MYPY = False
if MYPY:
    from typing import Any, Callable, Dict, Optional, Tuple

__all__ = ["dump", "load", "dumps_table", "loads_table"]

def _hex(v): # type: (bytes) -> str
    return binascii.b2a_hex(v).decode('ascii')

def _unhex(v): # type: (str) -> bytes
    try:
        return binascii.a2b_hex(v)
    except (binascii.Error, TypeError):
        raise ValueError("Invalid hexadecimal value %r" % (v,))

def _escaped_string(v): # type: (str) -> str
    return _unhex(v).decode(STRING_ENCODING, STRING_ERRORS)

class DmiTomlEncoder(toml.TomlEncoder):
    def __init__(self, _dict = OrderedDict, preserve = False):
        super(DmiTomlEncoder, self).__init__(_dict, preserve)

    def dump_value(self, v):
        if isinstance(v, (bytes, bytearray)):
            return u'h' + super(DmiTomlEncoder, self).dump_value(_hex(v))
        if isinstance(v, Bitmask):
            return super(DmiTomlEncoder, self).dump_value(v.value)
        if isinstance(v, str):
            try:
                v.encode(STRING_ENCODING)
            except UnicodeEncodeError:
                return u'r' + super(DmiTomlEncoder, self).dump_value(_hex(v.encode(STRING_ENCODING, STRING_ERRORS)))
        return super(DmiTomlEncoder, self).dump_value(v)


class DmiTomlDecoder(toml.TomlDecoder):
    DmiTypes = {
        'h': _unhex,
        'r': _escaped_string,
    } # type: Dict[str, Callable[[str], Any]]

    def __init__(self, _dict = OrderedDict):
        super(DmiTomlDecoder, self).__init__(_dict)

    def _prefixed(self, sv): # type: (str) -> bool
        return len(sv) > 2 and sv[0] in self.DmiTypes and sv[1] in u"\"'"

    def load_value(self, v, strictly_valid = True):
        sv = v.strip()
        if self._prefixed(sv):
            retv, rett = super(DmiTomlDecoder, self).load_value(sv[1:], strictly_valid)
            if rett != "str":
                raise ValueError("Prefix %r requires a string, got %s" % (sv[0], rett))
            return self.DmiTypes[sv[0]](retv), rett
        return super(DmiTomlDecoder, self).load_value(v, strictly_valid)

    def bounded_string(self, s):
        # Prefixed values inside string arrays
        if self._prefixed(s):
            s = s[1:]
        return super(DmiTomlDecoder, self).bounded_string(s)


def dump(cfg): # type: (Dict[str, Any]) -> bytes
    """ Dumps configuration (see fields.table_config) into TOML. Returns utf-8 encoded bytes. """
    return toml.dumps(cfg, DmiTomlEncoder()).encode('utf8')

def load(data): # type: (bytes) -> Dict[str, Any]
    """ Loads TOML (bytes, utf-8 encoded) into configuration accepted by
        encoder. Raises DecoderError on invalid TOML. """
    try:
        return toml.loads(data.decode("utf8"), decoder = DmiTomlDecoder())
    except UnicodeDecodeError as e:
        raise DecoderError("TOML input is not valid utf-8: %s" % (e,))
    except toml.TomlDecodeError as e:
        raise DecoderError("Invalid TOML: %s" % (e,))

def dumps_table(table, logger = None, fields = True): # type: (Table, Optional[Logger], bool) -> bytes
    return dump(table_config(table, logger, fields))

def loads_table(data, logger = None): # type: (bytes, Optional[Logger]) -> Tuple[EntryPoint, bytearray]
    return encoder.encode(load(data), logger)
