MYPY = False
if MYPY:
    from typing import Union

__all__ = ["checksum", "checksum_ok", "KIB", "MIB", "GIB"]

KIB = 1 << 10
MIB = 1 << 20
GIB = 1 << 30

def checksum(b): # type: (Union[bytes, bytearray]) -> int
    """ Calculate checksum byte c, so that sum(b) + c is zero (modulo 256). """
    return (256 * len(b) - sum(b)) % 256

def checksum_ok(b): # type: (Union[bytes, bytearray]) -> bool
    """ True when bytes of b add up to zero (modulo 256). """
    return sum(bytearray(b)) % 256 == 0
