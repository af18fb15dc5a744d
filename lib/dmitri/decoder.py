from .specification import *
from .logging       import *
from .types         import *

MYPY = False
if MYPY:
    from typing import List, Optional, Tuple, Union

__all__ = ["Decoder", "decode"]

STRING_ENCODING = 'utf8'
STRING_ERRORS   = 'surrogateescape'

def decode_string(b): # type: (bytes) -> str
    return b.decode(STRING_ENCODING, STRING_ERRORS)

class Decoder(object):
    """ Splits raw structure table into Structures.

        Segmentation is a single forward pass. Each structure consumes at
        least its 4 byte header and 2 byte terminator, so any input ends in
        time proportional to its length. Malformed data stops the pass; the
        structures decoded so far are returned in Table with `error` set. """
    logger       = None # type: Logger
    lenient_tail = None # type: bool

    def __init__(self, logger = None, lenient_tail = True): # type: (Optional[Logger], bool) -> None
        if logger is None:
            self.logger = StdErrLogger()
        else:
            self.logger = logger
        self.lenient_tail = lenient_tail

    def decodererror(self, msg): # type: (str) -> None
        self.logger.decodererror(msg)
    def warning(self, msg): # type: (str) -> None
        self.logger.warning(msg)
    def info(self, msg): # type: (str) -> None
        self.logger.info(msg)

    def decode_header(self, data, pos, end): # type: (bytes, int, int) -> Header
        if end - pos < HEADER_SIZE:
            raise MalformedStructure("Truncated header, %d bytes left" % (end - pos,), pos)
        header = Header.unpack(data, pos)
        if header.length < HEADER_SIZE:
            raise MalformedStructure("Structure type %d handle 0x%04X has invalid length %d"
                % (header.type, header.handle, header.length), pos)
        if pos + header.length > end:
            raise MalformedStructure("Structure type %d handle 0x%04X overlaps end of table (%d > %d bytes left)"
                % (header.type, header.handle, header.length, end - pos), pos)
        return header

    def decode_strings(self, data, start, end): # type: (bytes, int, int) -> Tuple[List[str], int]
        """ Returns strings of string table at `start` and offset of next structure. """
        term = data.find(b'\x00\x00', start, end)
        if term == start:
            return [], start + 2
        if term > start:
            return [decode_string(s) for s in data[start:term].split(b'\x00')], term + 2
        # No double null before end of table
        if self.lenient_tail:
            if start == end:
                self.info("Last structure has no string table terminator")
                return [], end
            if data[end - 1] == 0:
                self.info("Last structure has single null string table terminator")
                region = data[start:end - 1]
                if not region:
                    return [], end
                return [decode_string(s) for s in region.split(b'\x00')], end
        raise MalformedStructure("Unterminated string table", start)

    def decode_structure(self, data, pos, end): # type: (bytes, int, int) -> Tuple[Structure, int]
        header = self.decode_header(data, pos, end)
        formatted_end = pos + header.length
        strings, next_pos = self.decode_strings(data, formatted_end, end)
        return Structure(header, data[pos + HEADER_SIZE:formatted_end], strings), next_pos

    def table_end(self, data, entry_point): # type: (bytes, Optional[EntryPoint]) -> int
        if entry_point is None or not entry_point.table_length:
            return len(data)
        if entry_point.table_length > len(data):
            if entry_point.kind == EntryPoint.LEGACY32:
                self.warning("Table length is %d bytes, but only %d bytes available"
                    % (entry_point.table_length, len(data)))
            return len(data)
        return entry_point.table_length

    def decode(self, data, entry_point = None): # type: (Union[bytes, bytearray], Optional[EntryPoint]) -> Table
        data = bytes(data)
        end = self.table_end(data, entry_point)
        limit = 0
        if entry_point is not None and entry_point.kind == EntryPoint.LEGACY32:
            limit = entry_point.structure_count

        structures = [] # type: List[Structure]
        error = None    # type: Optional[MalformedStructure]
        pos = 0
        while pos < end:
            if limit and len(structures) >= limit:
                self.info("Stopping after %d structures announced by entry point, %d bytes left"
                    % (limit, end - pos))
                break
            try:
                structure, pos = self.decode_structure(data, pos, end)
            except MalformedStructure as e:
                self.warning("%s, %d structures decoded" % (e.message, len(structures)))
                error = e
                break
            structures.append(structure)
            if structure.header.type == END_OF_TABLE:
                if pos < end:
                    self.info("Ignoring %d bytes after End-of-Table structure" % (end - pos,))
                break
        return Table(structures, entry_point, error)

def decode(data_in, entry_point = None, logger = None, lenient_tail = True):
    # type: (Union[bytes, bytearray], Optional[EntryPoint], Optional[Logger], bool) -> Table
    d = Decoder(logger, lenient_tail)
    return d.decode(data_in, entry_point)
