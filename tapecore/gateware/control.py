from amaranth import *
from amaranth.lib import enum, wiring
from amaranth.lib.wiring import In, Out

from ..arch.program import Opcode
from .registers import Source


__all__ = ["State", "ControlUnit"]


class State(enum.Enum, shape=unsigned(5)):
    START           = 0x00
    FETCH           = 0x01
    DECODE          = 0x02

    POINTER_INC     = 0x03
    POINTER_DEC     = 0x04

    CELL_INC_READ   = 0x05
    CELL_INC_SELECT = 0x06
    CELL_INC_WRITE  = 0x07
    CELL_DEC_READ   = 0x08
    CELL_DEC_SELECT = 0x09
    CELL_DEC_WRITE  = 0x0A

    LOOP_READ       = 0x0B
    LOOP_TEST       = 0x0C
    SKIP_FETCH      = 0x0D
    SKIP_SCAN       = 0x0E
    LOOP_CLOSE      = 0x0F

    OUTPUT_READ     = 0x10
    OUTPUT_WAIT     = 0x11
    INPUT_SELECT    = 0x12
    INPUT_WAIT      = 0x13
    INPUT_WRITE     = 0x14

    SKIP            = 0x15
    HALT            = 0x1F


class ControlUnit(wiring.Component):
    """
    Processor control state machine.

    Every cycle, the control unit decides the next state from the present state, the last byte
    read from the instruction store (``opcode``), the last byte read from the data tape
    (``cell``), and the I/O handshake flags. All of the control outputs are combinatorial.

    The instruction sequences are:

    * ``>``, ``<``: step the data pointer and the program counter.
    * ``+``, ``-``: read the cell and select the ALU source; let the ALU latch the new value;
      write it back and step the program counter.
    * ``[``: step the program counter past the bracket and read the cell. If the cell is non-zero,
      capture the program counter into the loop return cache. Otherwise, fetch and skip bytes
      until a ``]`` has been skipped; brackets are not counted while doing so.
    * ``]``: if the last byte read from the data tape is non-zero, load the program counter from
      the loop return cache, otherwise step it. The cell is not read again.
    * ``.``: read the cell, then offer it to the output device until it is not busy.
    * ``,``: select the external input as the ALU source, request input until it is valid, then
      write it to the cell.
    * ``0x00``: halt until reset.
    * any other byte: step the program counter.

    The ``pc_dec`` and ``cache_release`` outputs are never asserted.
    """
    opcode:        In(8)
    cell:          In(8)
    in_valid:      In(1)
    out_busy:      In(1)

    state:         Out(State, init=State.START)

    imem_en:       Out(1)
    dmem_en:       Out(1)
    dmem_we:       Out(1)
    pc_inc:        Out(1)
    pc_dec:        Out(1)
    pc_load:       Out(1)
    cache_capture: Out(1)
    cache_release: Out(1)
    dp_inc:        Out(1)
    dp_dec:        Out(1)
    alu_select:    Out(1)
    alu_source:    Out(Source)
    in_req:        Out(1)
    out_we:        Out(1)

    def elaborate(self, platform):
        m = Module()

        def goto(state):
            m.d.sync += self.state.eq(state)

        with m.Switch(self.state):
            with m.Case(State.START):
                goto(State.FETCH)

            with m.Case(State.FETCH):
                m.d.comb += self.imem_en.eq(1)
                goto(State.DECODE)

            with m.Case(State.DECODE):
                with m.Switch(self.opcode):
                    with m.Case(Opcode.INC_POINTER):
                        goto(State.POINTER_INC)
                    with m.Case(Opcode.DEC_POINTER):
                        goto(State.POINTER_DEC)
                    with m.Case(Opcode.INC_CELL):
                        goto(State.CELL_INC_READ)
                    with m.Case(Opcode.DEC_CELL):
                        goto(State.CELL_DEC_READ)
                    with m.Case(Opcode.LOOP_OPEN):
                        goto(State.LOOP_READ)
                    with m.Case(Opcode.LOOP_CLOSE):
                        goto(State.LOOP_CLOSE)
                    with m.Case(Opcode.OUTPUT):
                        goto(State.OUTPUT_READ)
                    with m.Case(Opcode.INPUT):
                        goto(State.INPUT_SELECT)
                    with m.Case(Opcode.HALT):
                        goto(State.HALT)
                    with m.Default():
                        goto(State.SKIP)

            with m.Case(State.POINTER_INC):
                m.d.comb += self.dp_inc.eq(1)
                m.d.comb += self.pc_inc.eq(1)
                goto(State.FETCH)

            with m.Case(State.POINTER_DEC):
                m.d.comb += self.dp_dec.eq(1)
                m.d.comb += self.pc_inc.eq(1)
                goto(State.FETCH)

            for source, read, select, write in (
                (Source.INCREMENT,
                    State.CELL_INC_READ, State.CELL_INC_SELECT, State.CELL_INC_WRITE),
                (Source.DECREMENT,
                    State.CELL_DEC_READ, State.CELL_DEC_SELECT, State.CELL_DEC_WRITE),
            ):
                with m.Case(read):
                    m.d.comb += self.dmem_en.eq(1)
                    m.d.comb += self.alu_select.eq(1)
                    m.d.comb += self.alu_source.eq(source)
                    goto(select)

                with m.Case(select):
                    goto(write)

                with m.Case(write):
                    m.d.comb += self.dmem_en.eq(1)
                    m.d.comb += self.dmem_we.eq(1)
                    m.d.comb += self.pc_inc.eq(1)
                    goto(State.FETCH)

            with m.Case(State.LOOP_READ):
                m.d.comb += self.dmem_en.eq(1)
                m.d.comb += self.pc_inc.eq(1)
                goto(State.LOOP_TEST)

            with m.Case(State.LOOP_TEST):
                with m.If(self.cell != 0):
                    m.d.comb += self.cache_capture.eq(1)
                    goto(State.FETCH)
                with m.Else():
                    goto(State.SKIP_FETCH)

            with m.Case(State.SKIP_FETCH):
                m.d.comb += self.imem_en.eq(1)
                goto(State.SKIP_SCAN)

            with m.Case(State.SKIP_SCAN):
                m.d.comb += self.pc_inc.eq(1)
                with m.If(self.opcode == Opcode.LOOP_CLOSE):
                    goto(State.FETCH)
                with m.Else():
                    goto(State.SKIP_FETCH)

            with m.Case(State.LOOP_CLOSE):
                with m.If(self.cell != 0):
                    m.d.comb += self.pc_load.eq(1)
                with m.Else():
                    m.d.comb += self.pc_inc.eq(1)
                goto(State.FETCH)

            with m.Case(State.OUTPUT_READ):
                m.d.comb += self.dmem_en.eq(1)
                goto(State.OUTPUT_WAIT)

            with m.Case(State.OUTPUT_WAIT):
                m.d.comb += self.out_we.eq(1)
                with m.If(~self.out_busy):
                    m.d.comb += self.pc_inc.eq(1)
                    goto(State.FETCH)

            with m.Case(State.INPUT_SELECT):
                m.d.comb += self.alu_select.eq(1)
                m.d.comb += self.alu_source.eq(Source.INPUT)
                goto(State.INPUT_WAIT)

            with m.Case(State.INPUT_WAIT):
                m.d.comb += self.in_req.eq(1)
                with m.If(self.in_valid):
                    goto(State.INPUT_WRITE)

            with m.Case(State.INPUT_WRITE):
                m.d.comb += self.dmem_en.eq(1)
                m.d.comb += self.dmem_we.eq(1)
                m.d.comb += self.pc_inc.eq(1)
                goto(State.FETCH)

            with m.Case(State.SKIP):
                m.d.comb += self.pc_inc.eq(1)
                goto(State.FETCH)

            with m.Case(State.HALT):
                pass

        return m
