import logging
from collections import namedtuple
import operator
from numbers import Integral, Real
from string import hexdigits
from struct import Struct


logger = logging.getLogger(__name__)


class PickleCodecError(ValueError):
    """Base class for errors raised while converting pickle wire
    primitives."""
    pass


class InvalidEncodingError(PickleCodecError):
    """A byte group has an unsupported length, or a string holds a
    character that has no single-byte raw representation."""
    pass


class InvalidEscapeError(PickleCodecError):
    """An escape marker is followed by an unrecognized or truncated
    escape sequence."""
    pass


class StreamStruct(Struct):
    """Subclass of ``struct.Struct`` with methods to write and read
    binary data with file-like objects."""

    def unpack_read(self, fp):
        """Unpack bytes from a readable file-like object *fp* according
        to the compiled format. This method raises EOFError if not
        enough bytes can be read from *fp*, even across partial
        reads."""
        return self.unpack(readbytes(fp, self.size))


# Pre-compiled Struct instances. Integers are little-endian and doubles
# are big-endian on the wire.
unsigned_short_struct = StreamStruct('<H')
int_struct = StreamStruct('<i')
double_struct = StreamStruct('>d')


LF = 0x0a

MAX_INT = 0x7fffffff
MIN_INT = -0x80000000

MAX_LONG = 0x7fffffffffffffff
MIN_LONG = -0x8000000000000000


class EndOfInput(object):
    """Class that abstractly represents an exhausted byte source.

    Instances of this class are returned by ``readbyte()`` in place of
    a byte value when nothing more can be read."""
    pass


class _Number(object):
    """Common behaviour of the Int64 and BigInt cases.

    Construction raises a TypeError for a non-integral value and a
    ValueError for a value outside the range of the case. Two numbers
    only compare equal if they are the same case with the same value.
    """
    __slots__ = ()

    def __new__(cls, value):
        value = operator.index(value)
        if not cls.holds(value):
            raise ValueError(
                "%d is out of range for %s" % (value, cls.__name__))
        return super(_Number, cls).__new__(cls, value)

    def __eq__(self, other):
        return type(self) is type(other) and self.value == other.value

    def __ne__(self, other):
        return not self == other

    def __hash__(self):
        return hash((type(self).__name__, self.value))

    def __int__(self):
        return self.value

    def __index__(self):
        return self.value


class Int64(_Number, namedtuple("Int64", ["value"])):
    """A decoded integer that fits in a signed 64-bit integer."""
    __slots__ = ()

    @staticmethod
    def holds(value):
        return MIN_LONG <= value <= MAX_LONG


class BigInt(_Number, namedtuple("BigInt", ["value"])):
    """A decoded integer outside the range of a signed 64-bit
    integer."""
    __slots__ = ()

    @staticmethod
    def holds(value):
        return not Int64.holds(value)


def readline(fp, include_lf=False):
    """Read a line of text from a readable file-like object *fp*.

    This function calls the ``read()`` method of *fp* to read 1 byte at
    a time until a line feed (0x0a) is read or *fp* is exhausted. Each
    byte is widened to the character with the same value. The line
    feed is always consumed, but it is only part of the returned string
    if *include_lf* is true. No carriage return handling is done.

    This function raises EOFError if *fp* is exhausted before any byte
    of the line was read. A final line without a line feed is returned
    as is.
    """
    line = bytearray()
    while True:
        b = fp.read(1)
        if not b:
            if not line:
                raise EOFError("premature end of file")
            break
        c = b[0]
        if c != LF or include_lf:
            line.append(c)
        if c == LF:
            break
    return raw_string_from_bytes(line)


def readbyte(fp):
    """Read a single unsigned byte from a readable file-like object
    *fp*.

    Returns an ``int`` from 0 (inclusive) to 256 (exclusive), or an
    instance of EndOfInput if *fp* is exhausted. This function never
    raises EOFError.
    """
    b = fp.read(1)
    if not b:
        return EndOfInput()
    return b[0]


def readbytes(fp, n):
    """Read exactly *n* bytes from a readable file-like object *fp* and
    return them as ``bytes``.

    Reading zero bytes does not touch *fp*. This function raises
    EOFError if *fp* is exhausted before *n* bytes were read.
    """
    buffer = bytearray(n)
    readbytes_into(fp, buffer, 0, n)
    return bytes(buffer)


def readbytes_into(fp, buffer, offset, length):
    """Read exactly *length* bytes from a readable file-like object *fp*
    into the writeable *buffer*, starting at index *offset*.

    The ``read()`` method of *fp* is called repeatedly until the region
    is filled, so short reads are tolerated. This function raises
    EOFError if *fp* is exhausted first, and ValueError if the region
    does not lie within *buffer*.
    """
    if offset < 0 or length < 0 or offset + length > len(buffer):
        raise ValueError(
            "Region [%d:%d] does not fit a buffer of %d bytes" %
            (offset, offset + length, len(buffer)))
    view = memoryview(buffer)
    while length > 0:
        chunk = fp.read(length)
        if not chunk:
            logger.debug("input ended with %d bytes still expected", length)
            raise EOFError("expected more bytes in input stream")
        view[offset:offset + len(chunk)] = chunk
        offset += len(chunk)
        length -= len(chunk)


def read_ushort(fp):
    """Read a little-endian unsigned 16-bit integer from a readable
    file-like object *fp*."""
    return unsigned_short_struct.unpack_read(fp)[0]


def read_int(fp):
    """Read a little-endian signed 32-bit integer from a readable
    file-like object *fp*."""
    return int_struct.unpack_read(fp)[0]


def read_double(fp):
    """Read a big-endian IEEE 754 double from a readable file-like
    object *fp*."""
    return double_struct.unpack_read(fp)[0]


def write_int(fp, i):
    """Write *i* to a writeable file-like object *fp* as 4 bytes, see
    ``int_to_bytes()``."""
    fp.write(int_to_bytes(i))


def write_double(fp, d):
    """Write *d* to a writeable file-like object *fp* as 8 bytes, see
    ``double_to_bytes()``."""
    fp.write(double_to_bytes(d))


def bytes_to_int(data):
    """Convert a little-endian byte group *data* to an ``int``.

    2 bytes are interpreted as an unsigned 16-bit integer and 4 bytes
    as a signed 32-bit integer. Any other length raises
    InvalidEncodingError.
    """
    if len(data) == unsigned_short_struct.size:
        return unsigned_short_struct.unpack(data)[0]
    elif len(data) == int_struct.size:
        return int_struct.unpack(data)[0]
    logger.debug("cannot convert %d bytes to int", len(data))
    raise InvalidEncodingError(
        "invalid amount of bytes to convert to int: %d" % len(data))


def int_to_bytes(i):
    """Convert *i* to its 4-byte little-endian two's complement
    representation.

    This function raises a TypeError if *i* is not integral and a
    ValueError if it is not within the range of a signed 32-bit
    integer.
    """
    if not isinstance(i, Integral):
        raise TypeError("Object must be an integer: %r" % (i,))
    if not (MIN_INT <= i <= MAX_INT):
        raise ValueError("Integer must be in the range of a signed integer.")
    return int_struct.pack(i)


def double_to_bytes(d):
    """Convert *d* to the 8 bytes of its big-endian IEEE 754 bit
    pattern. NaN payloads and the sign of zero are kept.

    This function raises a TypeError if *d* is not a real number and an
    OverflowError if it is too large to be represented as a double.
    """
    if not isinstance(d, Real):
        raise TypeError("Object must be a float: %r" % (d,))
    return double_struct.pack(float(d))


def bytes_to_double(data):
    """Convert the 8-byte big-endian byte group *data* to a ``float``.
    Any other length raises InvalidEncodingError."""
    if len(data) != double_struct.size:
        logger.debug("cannot convert %d bytes to double", len(data))
        raise InvalidEncodingError(
            "invalid amount of bytes to convert to double: %d" % len(data))
    return double_struct.unpack(data)[0]


def decode_long(data):
    """Decode an arbitrary length little-endian two's complement byte
    group *data*.

    An empty group decodes to zero. The result is narrowed with
    ``optimize_bigint()``, so it is an Int64 whenever the value fits in
    64 bits and a BigInt otherwise.
    """
    if not data:
        return Int64(0)
    return optimize_bigint(int.from_bytes(data, "little", signed=True))


def encode_long(value):
    """Encode the integer *value* (a plain ``int``, Int64 or BigInt) as
    a minimal little-endian two's complement byte group.

    The group is at least one byte long and always leaves room for the
    sign bit, so zero encodes as ``b'\\x00'`` and 255 as
    ``b'\\xff\\x00'``.

    A non-integral *value* raises a TypeError.
    """
    value = operator.index(value)
    magnitude = value if value >= 0 else ~value
    size = magnitude.bit_length() // 8 + 1
    return value.to_bytes(size, "little", signed=True)


def optimize_bigint(value):
    """Narrow the integer *value* to an Int64 if it lies within the
    signed 64-bit range, else wrap it in a BigInt.

    Passing an Int64 or BigInt classifies the wrapped value again, so
    this function is idempotent. A non-integral *value*, such as a
    ``float`` or ``str``, raises a TypeError.
    """
    value = operator.index(value)
    if value == 0:
        return Int64(0)
    elif value > 0:
        if value <= MAX_LONG:
            return Int64(value)
    elif value >= MIN_LONG:
        return Int64(value)
    return BigInt(value)


def _unhex(s, i, ndigits):
    digits = s[i:i + ndigits]
    if len(digits) != ndigits:
        logger.debug("truncated escape at index %d of %r", i, s)
        raise InvalidEscapeError(
            "truncated escape sequence in string at index %d" % i)
    if not all(c in hexdigits for c in digits):
        raise InvalidEscapeError(
            "invalid hex digits in escape sequence: %r" % digits)
    return chr(int(digits, 16))


def _decode(s, marker, ndigits):
    if '\\' not in s:
        return s
    chars = []
    i = 0
    while i < len(s):
        c = s[i]
        i += 1
        if c != '\\':
            chars.append(c)
            continue
        if i >= len(s):
            logger.debug("lone escape marker at end of %r", s)
            raise InvalidEscapeError("unterminated escape sequence in string")
        c2 = s[i]
        i += 1
        if c2 == '\\':
            chars.append('\\')
        elif c2 == marker:
            chars.append(_unhex(s, i, ndigits))
            i += ndigits
        else:
            raise InvalidEscapeError(
                "invalid escape sequence in string: \\%s" % c2)
    return ''.join(chars)


def decode_escaped(s):
    """Decode a string *s* that may contain ``\\\\`` and ``\\xHH``
    escapes.

    If *s* holds no backslash it is returned unchanged. Any other or
    truncated escape sequence raises InvalidEscapeError.
    """
    return _decode(s, 'x', 2)


def decode_unicode_escaped(s):
    """Decode a string *s* that may contain ``\\\\`` and ``\\uHHHH``
    escapes, e.g. ``'\\u20ac'``.

    If *s* holds no backslash it is returned unchanged. Any other or
    truncated escape sequence raises InvalidEscapeError.
    """
    return _decode(s, 'u', 4)


def raw_string_from_bytes(data):
    """Construct a ``str`` from *data* by widening every byte to the
    character with the same value. No character encoding is
    applied."""
    return bytes(data).decode('latin_1')


def bytes_from_raw_string(s):
    """Convert a ``str`` of characters below 256 back to ``bytes``, the
    inverse of ``raw_string_from_bytes()``.

    This function raises InvalidEncodingError if *s* holds a character
    above 255.
    """
    try:
        return s.encode('latin_1')
    except UnicodeEncodeError as exc:
        logger.debug("character %r at index %d is not a raw byte",
                     s[exc.start], exc.start)
        raise InvalidEncodingError(
            "string contained a char > 255, cannot convert to bytes") from exc
