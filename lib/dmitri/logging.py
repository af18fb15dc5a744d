import sys

__all__ = [
    "ExceptionWithMsg", "DecoderError", "EncoderError",
    "SourceUnavailable", "EntryPointError", "EntryPointNotFound", "ChecksumError",
    "MalformedStructure", "StructureTooShort", "StructureNotPresent",
    "Logger", "StdErrLogger", "NullLogger",
]

class ExceptionWithMsg(Exception):
    """ Typed Exception for MYPY """
    message = None # type: str
    def __init__(self, message): # type: (str) -> None
        self.message = message
        super(ExceptionWithMsg, self).__init__(message)

class DecoderError(ExceptionWithMsg):
    """ Raised on fatal error when decoding. """
    pass

class EncoderError(ExceptionWithMsg):
    """ Raised on fatal error when encoding. """
    pass

class SourceUnavailable(ExceptionWithMsg):
    """ Raw table bytes could not be obtained from the platform
        (missing interface, access denied, unsupported OS). """
    pass

class EntryPointError(DecoderError):
    """ Entry point is unusable. Fatal for the whole table. """
    pass

class EntryPointNotFound(EntryPointError):
    """ No anchor string found. """
    pass

class ChecksumError(EntryPointError):
    """ Anchor found, but entry point is corrupt (checksum or length). """
    pass

class MalformedStructure(DecoderError):
    """ Structure header or string table is truncated or invalid.
        Segmentation stops, structures decoded so far are kept. """
    offset = None # type: int
    def __init__(self, message, offset): # type: (str, int) -> None
        super(MalformedStructure, self).__init__("%s (at offset 0x%04X)" % (message, offset))
        self.offset = offset

class StructureTooShort(DecoderError):
    """ Structure is shorter than the first revision of its type allows. """
    pass

class StructureNotPresent(DecoderError):
    """ Table contains no structure of requested type. This is normal,
        most hosts lack most optional types. """
    type = None # type: int
    def __init__(self, message, type): # type: (str, int) -> None
        super(StructureNotPresent, self).__init__(message)
        self.type = type

class Logger(object):
    """ Base logger for use with dmitri decoders """
    def info(self, msg): # type: (str) -> None
        """ Information level message (warning about harmless deviation). """
        raise NotImplementedError()

    def warning(self, msg): # type: (str) -> None
        """ Warning level message (data may be misinterpreted). """
        raise NotImplementedError()

    def decodererror(self, msg): # type: (str) -> None
        """ Decoding error, not fatal, but specification explicitly
            forbids such state. Standard logger raises DecoderError(msg)
            but it is safe to just log message and continue decoding.
            Decoders raise DecoderError directly for grave decoding errors."""
        raise NotImplementedError()

class StdErrLogger(Logger):
    """ Basic implementation of dmitri.Logger, that logs to sys.stderr
        and raises DecoderError when decodererror() is called. """
    def _log(self, prefix, msg): # type: (str, str) -> None
        sys.stderr.write("%s: %s\n" % (prefix, msg))

    def info(self, msg): # type: (str) -> None
        self._log('Inf', msg)

    def warning(self, msg): # type: (str) -> None
        self._log('Wrn', msg)

    def decodererror(self, msg): # type: (str) -> None
        raise DecoderError(msg)

class NullLogger(Logger):
    """ Discards everything, including decoder errors. """
    def info(self, msg): # type: (str) -> None
        pass

    def warning(self, msg): # type: (str) -> None
        pass

    def decodererror(self, msg): # type: (str) -> None
        pass
