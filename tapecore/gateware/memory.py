from amaranth import *
from amaranth.lib import wiring, memory
from amaranth.lib.wiring import In

from ..arch.program import INSTRUCTION_STORE_DEPTH, DATA_TAPE_DEPTH
from .ports import InstructionBusSignature, DataBusSignature


__all__ = ["InstructionStore", "DataTape"]


class InstructionStore(wiring.Component):
    """
    Read-only instruction store, initialized with a program image.

    Locations past the end of the image read as zero, which halts the processor.
    """
    def __init__(self, image, *, depth=INSTRUCTION_STORE_DEPTH):
        assert len(image) <= depth, "Program image must fit in the instruction store"

        self._image = bytes(image)
        self._depth = depth

        super().__init__({
            "bus": In(InstructionBusSignature((depth - 1).bit_length())),
        })

    def elaborate(self, platform):
        m = Module()

        m.submodules.storage = storage = \
            memory.Memory(shape=8, depth=self._depth, init=self._image)
        r_port = storage.read_port()
        m.d.comb += [
            r_port.addr.eq(self.bus.addr),
            r_port.en.eq(self.bus.en),
            self.bus.data.eq(r_port.data),
        ]

        return m


class DataTape(wiring.Component):
    """
    Read-write data tape.

    The read port is transparent for the write port: a write returns the written byte on the
    read data bus in the next cycle.
    """
    def __init__(self, init=(), *, depth=DATA_TAPE_DEPTH):
        assert len(init) <= depth, "Tape image must fit in the data tape"

        self._init  = list(init)
        self._depth = depth

        super().__init__({
            "bus": In(DataBusSignature((depth - 1).bit_length())),
        })

    def elaborate(self, platform):
        m = Module()

        m.submodules.storage = storage = \
            memory.Memory(shape=8, depth=self._depth, init=self._init)
        w_port = storage.write_port()
        r_port = storage.read_port(transparent_for=(w_port,))
        m.d.comb += [
            w_port.addr.eq(self.bus.addr),
            w_port.data.eq(self.bus.w_data),
            w_port.en.eq(self.bus.en & self.bus.we),
            r_port.addr.eq(self.bus.addr),
            r_port.en.eq(self.bus.en),
            self.bus.r_data.eq(r_port.data),
        ]

        return m
