__all__ = ["lazy", "dump_hex", "dump_program"]


class lazy:
    """
    A wrapper for lazily formatting an expression.

    Log arguments wrapped in ``lazy(lambda: ...)`` are only computed if the record is emitted.
    """

    __slots__ = ["_thunk"]

    def __init__(self, thunk):
        self._thunk = thunk

    def __str__(self):
        return str(self._thunk())

    def __repr__(self):
        return repr(self._thunk())


def dump_hex(data):
    def to_hex(data):
        data = bytes(data)
        if dump_hex.limit is None or len(data) < dump_hex.limit:
            return data.hex()
        else:
            return "{}... ({} bytes total)".format(
                data[:dump_hex.limit].hex(), len(data))
    return lazy(lambda: to_hex(data))

dump_hex.limit = 64


def dump_program(data):
    def to_text(data):
        data = bytes(data).rstrip(b"\x00")
        text = "".join(chr(byte) if 0x20 <= byte < 0x7f else "." for byte in data)
        if dump_program.limit is None or len(text) < dump_program.limit:
            return text
        else:
            return "{}... ({} bytes total)".format(text[:dump_program.limit], len(data))
    return lazy(lambda: to_text(data))

dump_program.limit = 64
