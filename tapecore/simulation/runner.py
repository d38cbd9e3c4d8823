import logging
import collections

from amaranth.sim import Simulator

from ..gateware.control import State
from ..gateware.system import TapeMachine
from ..model import Status, RunResult, status_of
from ..support.logging import dump_hex


__all__ = ["run_gateware"]


logger = logging.getLogger(__name__)


def run_gateware(image, *, input=b"", tape=(), max_cycles=100_000, output_busy=None,
                 vcd_file=None):
    """
    Run ``image`` on :class:`TapeMachine` in the Amaranth simulator.

    The stopping rules are the same as those of :meth:`tapecore.model.Machine.run`: the
    simulation ends when the processor halts, when it requests input after ``input`` has been
    exhausted, or after ``max_cycles`` enabled cycles. If ``output_busy`` is provided, it is
    called with the cycle number before every cycle to decide whether the output stream is
    stalled.
    """
    dut = TapeMachine(image, tape=tape)
    control = dut.processor.control

    pending = collections.deque(input)
    output  = bytearray()
    trace   = []
    outcome = {}

    async def testbench(ctx):
        ctx.set(dut.en, 1)

        cycles = 0
        busy   = False
        while cycles < max_cycles:
            if output_busy is not None:
                busy = bool(output_busy(cycles))
            state = ctx.get(control.state)
            if status_of(state, input_pending=bool(pending), output_busy=busy) in \
                    (Status.HALTED, Status.AWAITING_INPUT):
                break
            if state == State.DECODE:
                trace.append(ctx.get(dut.processor.pc.value))

            ctx.set(dut.i.valid, bool(pending))
            if pending:
                ctx.set(dut.i.payload, pending[0])
            ctx.set(dut.o.ready, not busy)
            _, _, i_ready, o_valid, o_payload = \
                await ctx.tick().sample(dut.i.ready, dut.o.valid, dut.o.payload)
            if pending and i_ready:
                logger.debug("input %#04x", pending[0])
                pending.popleft()
            if o_valid and not busy:
                logger.debug("output %#04x", o_payload)
                output.append(o_payload)
            cycles += 1

        outcome["status"] = status_of(ctx.get(control.state), input_pending=bool(pending),
                                      output_busy=busy)
        outcome["cycles"] = cycles

    sim = Simulator(dut)
    sim.add_clock(1e-8)
    sim.add_testbench(testbench)
    if vcd_file is None:
        sim.run()
    else:
        with sim.write_vcd(vcd_file):
            sim.run()

    logger.debug("gateware %s after %d cycles, output: %s",
                 outcome["status"].value, outcome["cycles"], dump_hex(output))
    return RunResult(outcome["status"], bytes(output), outcome["cycles"], trace)
