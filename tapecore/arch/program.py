import logging

from amaranth.lib import enum

from ..support.logging import dump_hex


__all__ = [
    "INSTRUCTION_STORE_DEPTH", "DATA_TAPE_DEPTH",
    "Opcode", "ProgramError", "assemble", "check_brackets", "tape_image",
]


logger = logging.getLogger(__name__)


INSTRUCTION_STORE_DEPTH = 4096
DATA_TAPE_DEPTH         = 1024


class Opcode(enum.IntEnum, shape=8):
    HALT        = 0x00
    INC_CELL    = ord("+")
    INPUT       = ord(",")
    DEC_CELL    = ord("-")
    OUTPUT      = ord(".")
    DEC_POINTER = ord("<")
    INC_POINTER = ord(">")
    LOOP_OPEN   = ord("[")
    LOOP_CLOSE  = ord("]")


class ProgramError(Exception):
    pass


def assemble(source, *, compact=False):
    """
    Convert program text into an instruction store image.

    Any byte that is not an opcode executes as a single-cycle no-op, so comments may be left in
    place; with ``compact``, they are dropped instead. A halt byte is appended unless the program
    already ends with one.
    """
    if isinstance(source, str):
        try:
            source = source.encode("latin-1")
        except UnicodeEncodeError as e:
            raise ProgramError(f"program contains a non-byte character at offset {e.start}")
    image = bytes(source)

    if compact:
        image = bytes(byte for byte in image if byte in Opcode.__members__.values())
    if not image.endswith(bytes([Opcode.HALT])):
        image += bytes([Opcode.HALT])

    if len(image) > INSTRUCTION_STORE_DEPTH:
        raise ProgramError("program is {} bytes long, but the instruction store only holds {}"
                           .format(len(image), INSTRUCTION_STORE_DEPTH))

    logger.debug("assembled %d-byte image: %s", len(image), dump_hex(image))
    return image


def check_brackets(image):
    """
    Check loop structure of ``image`` and return its maximum loop nesting depth.

    The processor keeps a single loop return address and does not count brackets while skipping
    a loop, so programs with nested or unbalanced loops do not behave conventionally. Such
    programs are still accepted; a warning is logged for each problem.
    """
    depth = max_depth = 0
    for offset, byte in enumerate(image):
        if byte == Opcode.HALT:
            break
        if byte == Opcode.LOOP_OPEN:
            depth += 1
            max_depth = max(depth, max_depth)
        elif byte == Opcode.LOOP_CLOSE:
            if depth == 0:
                logger.warning("unmatched ']' at offset %#05x", offset)
            else:
                depth -= 1
    if depth > 0:
        logger.warning("%d unmatched '[' at end of program", depth)
    if max_depth > 1:
        logger.warning("loops are nested %d deep; only the innermost loop return address is "
                       "kept, so enclosing loops will not repeat from their start", max_depth)
    return max_depth


def tape_image(values=()):
    """Validate an initial data tape image."""
    values = list(values)
    if len(values) > DATA_TAPE_DEPTH:
        raise ProgramError("tape image has {} cells, but the data tape only holds {}"
                           .format(len(values), DATA_TAPE_DEPTH))
    for index, value in enumerate(values):
        if value not in range(256):
            raise ProgramError(f"tape cell {index} has value {value!r}, which is not a byte")
    return values
