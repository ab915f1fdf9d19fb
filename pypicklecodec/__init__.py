"""
=============
Pickle Codec
=============

Conversion of the primitive values of the pickle protocol to and from
their wire bytes. Opcodes and object construction are left to the
caller; this package only reads bytes from a stream and interprets
byte groups the caller has already located.

Wire primitives
---------------

Integers are little-endian, doubles are big-endian:

=========================== ================================== =======
Primitive                   Encoding                           Length
=========================== ================================== =======
unsigned short              little-endian                      2
signed int                  little-endian, two's complement    4
double                      big-endian, IEEE 754 raw bits      8
arbitrary-precision integer little-endian, two's complement,   0..n
                            minimal length
escaped byte literal        ``\\\\`` -> ``\\``, ``\\xHH`` -> byte  variable
escaped unicode literal     ``\\\\`` -> ``\\``, ``\\uHHHH`` ->     variable
                            code point
=========================== ================================== =======

Text lines end at a single line feed byte (0x0a). Decoded integers of
arbitrary length are returned as ``Int64`` when they fit in a signed
64-bit integer and as ``BigInt`` otherwise.
"""

import logging

from pypicklecodec.version import __version__
from pypicklecodec.picklecodec import (
    BigInt,
    EndOfInput,
    Int64,
    InvalidEncodingError,
    InvalidEscapeError,
    PickleCodecError,
    bytes_from_raw_string,
    bytes_to_double,
    bytes_to_int,
    decode_escaped,
    decode_long,
    decode_unicode_escaped,
    double_to_bytes,
    encode_long,
    int_to_bytes,
    optimize_bigint,
    raw_string_from_bytes,
    read_double,
    read_int,
    read_ushort,
    readbyte,
    readbytes,
    readbytes_into,
    readline,
    write_double,
    write_int,
    )


logging.getLogger(__name__).addHandler(logging.NullHandler())
