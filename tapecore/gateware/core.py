from amaranth import *
from amaranth.hdl import EnableInserter, ResetInserter
from amaranth.lib import wiring
from amaranth.lib.wiring import In, Out

from ..arch.program import INSTRUCTION_STORE_DEPTH, DATA_TAPE_DEPTH
from .ports import *
from .registers import *
from .control import ControlUnit


__all__ = ["Processor"]


class Processor(wiring.Component):
    """
    Tape machine processor core.

    The core advances by one control state per cycle in which ``en`` is asserted, and does
    nothing otherwise; memory strobes and input requests are suppressed while it is disabled.

    A byte offered on the output port stays offered while the core is disabled. If it is accepted
    then, the core withdraws it, and treats the output device as ready once it is enabled again.

    Asserting ``rst`` returns the core to its initial state on the next clock edge, whether or
    not it is enabled. The program counter and the data pointer are reset asynchronously: their
    addresses read as zero for as long as ``rst`` is asserted. The loop return cache is not reset.

    Members
    -------
    imem : Out(InstructionBusSignature(12))
        Instruction store interface.
    dmem : Out(DataBusSignature(10))
        Data tape interface.
    inp : Out(InputPortSignature())
        Input device handshake.
    out : Out(OutputPortSignature())
        Output device handshake.
    en : In(1)
        Global enable.
    rst : In(1)
        Reset.
    """
    def __init__(self):
        self._pc_width = (INSTRUCTION_STORE_DEPTH - 1).bit_length()
        self._dp_width = (DATA_TAPE_DEPTH - 1).bit_length()

        super().__init__({
            "imem": Out(InstructionBusSignature(self._pc_width)),
            "dmem": Out(DataBusSignature(self._dp_width)),
            "inp":  Out(InputPortSignature()),
            "out":  Out(OutputPortSignature()),
            "en":   In(1),
            "rst":  In(1),
        })

        self.control = ControlUnit()
        self.pc      = ProgramCounter(self._pc_width)
        self.cache   = LoopReturnCache(self._pc_width)
        self.pointer = DataPointer(self._dp_width)
        self.alu     = ALUSelect()

    def elaborate(self, platform):
        m = Module()

        for name in ("control", "pc", "cache", "pointer", "alu"):
            m.submodules[name] = ResetInserter(self.rst)(EnableInserter(self.en)(
                getattr(self, name)))

        control = self.control
        strobe  = self.en & ~self.rst

        # Output byte accepted while the core was disabled.
        out_done = Signal()
        with m.If(self.rst | self.en):
            m.d.sync += out_done.eq(0)
        with m.Elif(self.out.we & ~self.out.busy):
            m.d.sync += out_done.eq(1)

        m.d.comb += [
            control.opcode.eq(self.imem.data),
            control.cell.eq(self.dmem.r_data),
            control.in_valid.eq(self.inp.valid),
            control.out_busy.eq(self.out.busy & ~out_done),

            self.pc.inc.eq(control.pc_inc),
            self.pc.dec.eq(control.pc_dec),
            self.pc.load.eq(control.pc_load),
            self.pc.target.eq(self.cache.value),
            self.pc.clear.eq(self.rst),

            self.cache.pc.eq(self.pc.value),
            self.cache.capture.eq(control.cache_capture),
            self.cache.release.eq(control.cache_release),

            self.pointer.inc.eq(control.dp_inc),
            self.pointer.dec.eq(control.dp_dec),
            self.pointer.clear.eq(self.rst),

            self.alu.select.eq(control.alu_select),
            self.alu.source.eq(control.alu_source),
            self.alu.input.eq(self.inp.data),
            self.alu.cell.eq(self.dmem.r_data),

            self.imem.addr.eq(self.pc.value),
            self.imem.en.eq(control.imem_en & strobe),

            self.dmem.addr.eq(self.pointer.value),
            self.dmem.w_data.eq(self.alu.result),
            self.dmem.en.eq(control.dmem_en & strobe),
            self.dmem.we.eq(control.dmem_we & strobe),

            self.inp.req.eq(control.in_req & strobe),

            self.out.data.eq(self.dmem.r_data),
            self.out.we.eq(control.out_we & ~self.rst & ~out_done),
        ]

        return m
