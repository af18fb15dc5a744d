#!/usr/bin/env python3

"""
Convert SMBIOS table dumps to YAML and back.

    dmi2yml.py                 live system table as YAML
    dmi2yml.py dump.bin        SMBIOSRAW or --dump-bin file as YAML
    dmi2yml.py table.yml out   YAML back into SMBIOSRAW dump

"-" reads standard input.

https://www.dmtf.org/sites/default/files/standards/documents/DSP0134_3.9.0.pdf
"""

from collections import OrderedDict
import sys, yaml
import dmitri
from dmitri import dumpfile
from dmitri.specification import SM_ANCHOR, SM3_ANCHOR
MYPY = False
if MYPY:
    from typing import List, Optional, Tuple

class DmiDumper(yaml.SafeDumper):
    """ Keeps key order of decoded records, writes Bitmask as integer. """
    pass

def _represent_ordered(dumper, data): # type: (yaml.SafeDumper, OrderedDict) -> yaml.Node
    return dumper.represent_mapping(u'tag:yaml.org,2002:map', data.items())

def _represent_bitmask(dumper, data): # type: (yaml.SafeDumper, dmitri.Bitmask) -> yaml.Node
    return dumper.represent_int(data.value)

DmiDumper.add_representer(OrderedDict, _represent_ordered)
DmiDumper.add_representer(dmitri.Bitmask, _represent_bitmask)

def error(msg): # type: (str) -> None
    sys.stderr.write("Err: %s\n" % (msg,))
    sys.exit(1)

def is_dump(data): # type: (bytes) -> bool
    return data.startswith(dumpfile.RAW_MAGIC) or data.startswith(SM3_ANCHOR) or data.startswith(SM_ANCHOR)

def table_to_yaml(table): # type: (dmitri.Table) -> bytes
    if not table.complete:
        sys.stderr.write("Wrn: table is truncated: %s\n" % (table.error.message,))
    cfg = dmitri.table_config(table)
    return yaml.dump(cfg, Dumper=DmiDumper, default_flow_style=False, allow_unicode=True).encode('utf-8')

def process_data(data_in): # type: (bytes) -> Tuple[bytes, bool] # {{{
    if len(data_in) == 0:
        error("empty input")
    if is_dump(data_in):
        ep, raw = dumpfile.decode_dump(data_in)
        data_out  = table_to_yaml(dmitri.decode(raw, ep))
        is_binary = False
    else:
        cfg       = yaml.safe_load(data_in)
        ep, raw   = dmitri.encode(cfg)
        data_out  = bytes(dumpfile.encode_dump(ep, raw))
        is_binary = True
    return data_out, is_binary
# }}}

def read_input(argv): # type: (List[str]) -> Optional[bytes] # {{{
    """ Input file content, None for live system. """
    if len(argv) < 2:
        return None
    if argv[1] == "-":
        return sys.stdin.buffer.read()
    with open(argv[1], "rb") as f:
        return f.read()
# }}}

def write_output(argv, data_out, is_binary): # type: (List[str], bytes, bool) -> None # {{{
    if len(argv) > 2 and argv[2] != "-":
        with open(argv[2], "wb") as f:
            f.write(data_out)
    elif is_binary and sys.stdout.isatty():
        error("Stdout is terminal, refusing to print binary file")
    else:
        sys.stdout.buffer.write(data_out)
# }}}

def main(argv = None): # type: (Optional[List[str]]) -> None
    if argv is None:
        argv = sys.argv
    try:
        data_in = read_input(argv)
        if data_in is None:
            data_out, is_binary = table_to_yaml(dmitri.read()), False
        else:
            data_out, is_binary = process_data(data_in)
    except EnvironmentError as e:
        error("%s: %s" % (getattr(e, "filename", None) or argv[1], e.strerror))
    except dmitri.ExceptionWithMsg as e:
        error(e.message)
    except yaml.YAMLError as e:
        error("invalid YAML input: %s" % (e,))
    write_output(argv, data_out, is_binary)

if __name__ == "__main__":
    main()
