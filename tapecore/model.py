import enum
import logging
import collections
from typing import NamedTuple

from vcd import VCDWriter

from .arch.program import Opcode, INSTRUCTION_STORE_DEPTH, DATA_TAPE_DEPTH
from .gateware.control import State
from .gateware.registers import Source
from .support.logging import dump_hex


__all__ = [
    "Inputs", "Outputs", "transition",
    "Status", "status_of", "RunResult", "Machine", "run_model",
]


logger = logging.getLogger(__name__)


class Inputs(NamedTuple):
    opcode:   int  = 0
    cell:     int  = 0
    in_valid: bool = False
    out_busy: bool = False


class Outputs(NamedTuple):
    imem_en:       bool   = False
    dmem_en:       bool   = False
    dmem_we:       bool   = False
    pc_inc:        bool   = False
    pc_dec:        bool   = False
    pc_load:       bool   = False
    cache_capture: bool   = False
    cache_release: bool   = False
    dp_inc:        bool   = False
    dp_dec:        bool   = False
    alu_select:    bool   = False
    alu_source:    Source = Source.INPUT
    in_req:        bool   = False
    out_we:        bool   = False


_DECODE = {
    Opcode.INC_POINTER: State.POINTER_INC,
    Opcode.DEC_POINTER: State.POINTER_DEC,
    Opcode.INC_CELL:    State.CELL_INC_READ,
    Opcode.DEC_CELL:    State.CELL_DEC_READ,
    Opcode.LOOP_OPEN:   State.LOOP_READ,
    Opcode.LOOP_CLOSE:  State.LOOP_CLOSE,
    Opcode.OUTPUT:      State.OUTPUT_READ,
    Opcode.INPUT:       State.INPUT_SELECT,
    Opcode.HALT:        State.HALT,
}

_CELL_SEQUENCES = {
    State.CELL_INC_READ:   (Source.INCREMENT, State.CELL_INC_SELECT),
    State.CELL_DEC_READ:   (Source.DECREMENT, State.CELL_DEC_SELECT),
    State.CELL_INC_SELECT: (None, State.CELL_INC_WRITE),
    State.CELL_DEC_SELECT: (None, State.CELL_DEC_WRITE),
}


def transition(state, inputs):
    """
    Compute the control unit's next state and control outputs.

    This is a pure function of the present state and the inputs sampled during the cycle, and
    is equivalent to :class:`tapecore.gateware.control.ControlUnit`.
    """
    if state == State.START:
        return State.FETCH, Outputs()

    if state == State.FETCH:
        return State.DECODE, Outputs(imem_en=True)

    if state == State.DECODE:
        return _DECODE.get(inputs.opcode, State.SKIP), Outputs()

    if state == State.POINTER_INC:
        return State.FETCH, Outputs(dp_inc=True, pc_inc=True)

    if state == State.POINTER_DEC:
        return State.FETCH, Outputs(dp_dec=True, pc_inc=True)

    if state in (State.CELL_INC_READ, State.CELL_DEC_READ):
        source, next_state = _CELL_SEQUENCES[state]
        return next_state, Outputs(dmem_en=True, alu_select=True, alu_source=source)

    if state in (State.CELL_INC_SELECT, State.CELL_DEC_SELECT):
        _, next_state = _CELL_SEQUENCES[state]
        return next_state, Outputs()

    if state in (State.CELL_INC_WRITE, State.CELL_DEC_WRITE, State.INPUT_WRITE):
        return State.FETCH, Outputs(dmem_en=True, dmem_we=True, pc_inc=True)

    if state == State.LOOP_READ:
        return State.LOOP_TEST, Outputs(dmem_en=True, pc_inc=True)

    if state == State.LOOP_TEST:
        if inputs.cell != 0:
            return State.FETCH, Outputs(cache_capture=True)
        else:
            return State.SKIP_FETCH, Outputs()

    if state == State.SKIP_FETCH:
        return State.SKIP_SCAN, Outputs(imem_en=True)

    if state == State.SKIP_SCAN:
        if inputs.opcode == Opcode.LOOP_CLOSE:
            return State.FETCH, Outputs(pc_inc=True)
        else:
            return State.SKIP_FETCH, Outputs(pc_inc=True)

    if state == State.LOOP_CLOSE:
        if inputs.cell != 0:
            return State.FETCH, Outputs(pc_load=True)
        else:
            return State.FETCH, Outputs(pc_inc=True)

    if state == State.OUTPUT_READ:
        return State.OUTPUT_WAIT, Outputs(dmem_en=True)

    if state == State.OUTPUT_WAIT:
        if inputs.out_busy:
            return State.OUTPUT_WAIT, Outputs(out_we=True)
        else:
            return State.FETCH, Outputs(out_we=True, pc_inc=True)

    if state == State.INPUT_SELECT:
        return State.INPUT_WAIT, Outputs(alu_select=True, alu_source=Source.INPUT)

    if state == State.INPUT_WAIT:
        if inputs.in_valid:
            return State.INPUT_WRITE, Outputs(in_req=True)
        else:
            return State.INPUT_WAIT, Outputs(in_req=True)

    if state == State.SKIP:
        return State.FETCH, Outputs(pc_inc=True)

    if state == State.HALT:
        return State.HALT, Outputs()

    assert False, f"unknown state {state!r}"


class Status(enum.Enum):
    RUNNING         = "running"
    HALTED          = "halted"
    AWAITING_INPUT  = "awaiting-input"
    AWAITING_OUTPUT = "awaiting-output"


def status_of(state, *, input_pending, output_busy):
    if state == State.HALT:
        return Status.HALTED
    if state == State.INPUT_WAIT and not input_pending:
        return Status.AWAITING_INPUT
    if state == State.OUTPUT_WAIT and output_busy:
        return Status.AWAITING_OUTPUT
    return Status.RUNNING


class RunResult(NamedTuple):
    status: Status
    output: bytes
    cycles: int
    trace:  list


class Machine:
    """
    Cycle-accurate model of the processor, its memories, and its I/O devices.

    Each call to :meth:`step` corresponds to one enabled clock cycle of
    :class:`tapecore.gateware.system.TapeMachine`. Input bytes are queued with :meth:`feed`; the
    output device is busy while :attr:`output_busy` is true.

    :attr output:
        Bytes written by the program so far.
    :attr cycles:
        Cycles elapsed since the last reset.
    :attr trace:
        Addresses of the instructions decoded since the last reset, in order.
    """
    def __init__(self, image, *, tape=()):
        assert len(image) <= INSTRUCTION_STORE_DEPTH, \
            "Program image must fit in the instruction store"
        assert len(tape) <= DATA_TAPE_DEPTH, \
            "Tape image must fit in the data tape"

        self.image = bytes(image).ljust(INSTRUCTION_STORE_DEPTH, b"\x00")
        self.tape  = bytearray(bytes(tape).ljust(DATA_TAPE_DEPTH, b"\x00"))

        self.input  = collections.deque()
        self.output = bytearray()
        self.output_busy = False

        # Memory read data registers and the loop return cache are not affected by reset.
        self.imem_data = 0
        self.dmem_data = 0
        self.cache     = 0

        self.reset()

    def reset(self):
        self.state    = State.START
        self.pc       = 0
        self.pointer  = 0
        self.selected = Source.INPUT
        self.result   = 0
        self.cycles   = 0
        self.trace    = []

    def feed(self, data):
        self.input.extend(data)

    @property
    def status(self):
        return status_of(self.state, input_pending=bool(self.input),
                         output_busy=self.output_busy)

    def step(self):
        inputs = Inputs(opcode=self.imem_data, cell=self.dmem_data,
                        in_valid=bool(self.input), out_busy=self.output_busy)
        next_state, outputs = transition(self.state, inputs)
        logger.trace("cycle %d: %s pc=%03x dp=%03x cell=%02x",
                     self.cycles, self.state.name, self.pc, self.pointer, self.dmem_data)
        if self.state == State.DECODE:
            self.trace.append(self.pc)

        imem_data = self.imem_data
        if outputs.imem_en:
            imem_data = self.image[self.pc]

        dmem_data = self.dmem_data
        if outputs.dmem_en:
            if outputs.dmem_we:
                self.tape[self.pointer] = self.result
            dmem_data = self.tape[self.pointer]

        if outputs.out_we and not self.output_busy:
            logger.debug("output %#04x", self.dmem_data)
            self.output.append(self.dmem_data)

        in_data = self.input[0] if self.input else 0
        if outputs.in_req and self.input:
            logger.debug("input %#04x", in_data)
            self.input.popleft()

        if self.selected == Source.INPUT:
            self.result = in_data
        elif self.selected == Source.INCREMENT:
            self.result = (self.dmem_data + 1) & 0xff
        elif self.selected == Source.DECREMENT:
            self.result = (self.dmem_data - 1) & 0xff
        if outputs.alu_select:
            self.selected = outputs.alu_source

        pc = self.pc
        if outputs.pc_load:
            pc = self.cache
        elif outputs.pc_inc:
            pc = self.pc + 1
        elif outputs.pc_dec:
            pc = self.pc - 1

        if outputs.cache_capture:
            self.cache = self.pc
        elif outputs.cache_release:
            self.cache = (self.pc - 1) % INSTRUCTION_STORE_DEPTH

        if outputs.dp_inc:
            self.pointer = (self.pointer + 1) % DATA_TAPE_DEPTH
        elif outputs.dp_dec:
            self.pointer = (self.pointer - 1) % DATA_TAPE_DEPTH

        self.pc        = pc % INSTRUCTION_STORE_DEPTH
        self.imem_data = imem_data
        self.dmem_data = dmem_data
        self.state     = next_state
        self.cycles   += 1

        return self.status

    def run(self, max_cycles, *, output_busy=None, observer=None):
        """
        Step until the program halts or waits for input that has not been fed, or until
        ``max_cycles`` cycles have elapsed.

        If ``output_busy`` is provided, it is called with the cycle number before every cycle to
        decide whether the output device is busy. If ``observer`` is provided, it is called with
        the machine after every cycle.
        """
        for _ in range(max_cycles):
            if output_busy is not None:
                self.output_busy = bool(output_busy(self.cycles))
            if self.status in (Status.HALTED, Status.AWAITING_INPUT):
                break
            self.step()
            if observer is not None:
                observer(self)
        return self.status


class _VCDObserver:
    def __init__(self, writer):
        self._writer  = writer
        self._pc      = writer.register_var("tapecore", "pc", "wire", size=12, init=0)
        self._pointer = writer.register_var("tapecore", "pointer", "wire", size=10, init=0)
        self._state   = writer.register_var("tapecore", "state", "string",
                                            init=State.START.name)

    def __call__(self, machine):
        timestamp = machine.cycles * 10
        self._writer.change(self._pc, timestamp, machine.pc)
        self._writer.change(self._pointer, timestamp, machine.pointer)
        self._writer.change(self._state, timestamp, machine.state.name)


def run_model(image, *, input=b"", tape=(), max_cycles=1_000_000, output_busy=None,
              vcd_file=None):
    """Run ``image`` on the reference model; see :meth:`Machine.run`."""
    machine = Machine(image, tape=tape)
    machine.feed(input)
    if vcd_file is None:
        status = machine.run(max_cycles, output_busy=output_busy)
    else:
        with VCDWriter(vcd_file, timescale="1 ns", check_values=False) as writer:
            status = machine.run(max_cycles, output_busy=output_busy,
                                 observer=_VCDObserver(writer))
    logger.debug("model %s after %d cycles, output: %s",
                 status.value, machine.cycles, dump_hex(machine.output))
    return RunResult(status, bytes(machine.output), machine.cycles, list(machine.trace))
