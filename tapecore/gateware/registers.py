from amaranth import *
from amaranth.lib import enum, wiring
from amaranth.lib.wiring import In, Out


__all__ = ["ProgramCounter", "LoopReturnCache", "DataPointer", "Source", "ALUSelect"]


class _AddressRegister(wiring.Component):
    """
    An address register that wraps around on overflow.

    While ``clear`` is asserted, ``value`` reads as zero immediately, and the register is cleared
    on the next clock edge. Otherwise, ``inc`` and ``dec`` step the register by one, with ``inc``
    taking priority.

    :attr value:
        Current address.
    """
    def __init__(self, width, members={}):
        assert width >= 1

        self._width = width

        super().__init__({
            "inc":   In(1),
            "dec":   In(1),
            "clear": In(1),
            "value": Out(width),
            **members
        })

    @property
    def width(self):
        return self._width

    def elaborate(self, platform):
        m = Module()

        count = Signal(self._width)
        with m.If(self.clear):
            m.d.sync += count.eq(0)
        with m.Else():
            self._update(m, count)
        m.d.comb += self.value.eq(Mux(self.clear, 0, count))

        return m

    def _update(self, m, count):
        with m.If(self.inc):
            m.d.sync += count.eq(count + 1)
        with m.Elif(self.dec):
            m.d.sync += count.eq(count - 1)


class ProgramCounter(_AddressRegister):
    """
    Instruction store address register.

    In addition to stepping, ``load`` sets the register to ``target``; it takes priority over
    ``inc`` and ``dec``.
    """
    def __init__(self, width=12):
        super().__init__(width, {
            "load":   In(1),
            "target": In(width),
        })

    def _update(self, m, count):
        with m.If(self.load):
            m.d.sync += count.eq(self.target)
        with m.Else():
            super()._update(m, count)


class DataPointer(_AddressRegister):
    """Data tape address register."""
    def __init__(self, width=10):
        super().__init__(width)


class LoopReturnCache(wiring.Component):
    """
    Single-slot loop return address register.

    ``capture`` stores ``pc``; ``release`` stores ``pc - 1``. The register is not affected by
    reset, and its contents are undefined until the first write. Entering a loop overwrites the
    address of any enclosing loop.
    """
    def __init__(self, width=12):
        self._width = width

        super().__init__({
            "pc":      In(width),
            "capture": In(1),
            "release": In(1),
            "value":   Out(width),
        })

    def elaborate(self, platform):
        m = Module()

        address = Signal(self._width, reset_less=True)
        with m.If(self.capture):
            m.d.sync += address.eq(self.pc)
        with m.Elif(self.release):
            m.d.sync += address.eq(self.pc - 1)
        m.d.comb += self.value.eq(address)

        return m


class Source(enum.Enum, shape=2):
    INPUT     = 0
    INCREMENT = 1
    DECREMENT = 2


class ALUSelect(wiring.Component):
    """
    Cell write-back value selector.

    The source is a register, updated from ``source`` when ``select`` is asserted. The result is
    latched on every cycle from the source selected before that cycle, so a new selection is
    reflected in ``result`` two cycles after ``select`` is asserted.

    Members
    -------
    select : In(1)
        Update the selected source.
    source : In(Source)
        Source to select.
    input : In(8)
        External input byte.
    cell : In(8)
        Current cell value.
    selected : Out(Source)
        Currently selected source.
    result : Out(8)
        Value to be written back to the current cell.
    """
    select:   In(1)
    source:   In(Source)
    input:    In(8)
    cell:     In(8)
    selected: Out(Source)
    result:   Out(8)

    def elaborate(self, platform):
        m = Module()

        with m.If(self.select):
            m.d.sync += self.selected.eq(self.source)

        with m.Switch(self.selected):
            with m.Case(Source.INPUT):
                m.d.sync += self.result.eq(self.input)
            with m.Case(Source.INCREMENT):
                m.d.sync += self.result.eq(self.cell + 1)
            with m.Case(Source.DECREMENT):
                m.d.sync += self.result.eq(self.cell - 1)

        return m
