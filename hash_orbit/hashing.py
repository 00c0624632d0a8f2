import mmh3


def murmur3_32(value: str) -> int:
    """
    MurmurHash3 (x86, 32 bit, seed 0) of the UTF-8 encoded ``value``,
    as an unsigned integer.
    """
    return mmh3.hash(value, 0, signed=False)
