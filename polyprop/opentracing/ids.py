import random
import struct
from itertools import count
from uuid import uuid1

from fnvhash import fnv1a_64


class IdGenerator(object):
    """ Generate trace and span ids as lower-case hex strings.

        Span ids are the fnv1a hash of a per-generator sequence number and a
        random generator id, so they are unique within a process without
        coordination between generators.
    """

    id: bytes

    def __init__(self) -> None:
        self.id = struct.pack("Q", random.getrandbits(64))
        self._sequence = count(0)

    @staticmethod
    def new_trace_id() -> str:
        return uuid1().hex

    def new_span_id(self) -> str:
        # Little-endian encoding of the (sequence number, generator id) tuple
        span_id_int = fnv1a_64(struct.pack("<Q", next(self._sequence)) + self.id)
        return '{:016x}'.format(span_id_int)
