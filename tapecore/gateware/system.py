from amaranth import *
from amaranth.lib import wiring, stream
from amaranth.lib.wiring import In, Out

from .core import Processor
from .memory import InstructionStore, DataTape
from .stream import InputAdapter, OutputAdapter


__all__ = ["TapeMachine"]


class TapeMachine(wiring.Component):
    """
    Processor with its instruction store, data tape, and stream I/O.

    Members
    -------
    i : In(stream.Signature(8))
        Input bytes, consumed when the program executes ``,``.
    o : Out(stream.Signature(8))
        Output bytes, produced when the program executes ``.``. The processor waits for as long
        as ``o.ready`` is deasserted.
    en : In(1)
        Global enable.
    rst : In(1)
        Processor reset. The contents of the data tape are not affected.
    """
    i:   In(stream.Signature(8))
    o:   Out(stream.Signature(8))
    en:  In(1)
    rst: In(1)

    def __init__(self, image, *, tape=()):
        super().__init__()

        self.processor = Processor()
        self.imem      = InstructionStore(image)
        self.dmem      = DataTape(tape)
        self.inp       = InputAdapter()
        self.out       = OutputAdapter()

    def elaborate(self, platform):
        m = Module()

        m.submodules.processor = self.processor
        m.submodules.imem      = self.imem
        m.submodules.dmem      = self.dmem
        m.submodules.inp       = self.inp
        m.submodules.out       = self.out

        wiring.connect(m, self.processor.imem, self.imem.bus)
        wiring.connect(m, self.processor.dmem, self.dmem.bus)
        wiring.connect(m, self.processor.inp, self.inp.port)
        wiring.connect(m, self.processor.out, self.out.port)
        wiring.connect(m, wiring.flipped(self.i), self.inp.i)
        wiring.connect(m, self.out.o, wiring.flipped(self.o))

        m.d.comb += [
            self.processor.en.eq(self.en),
            self.processor.rst.eq(self.rst),
        ]

        return m
