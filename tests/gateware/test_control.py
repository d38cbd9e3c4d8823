import unittest
import itertools

from tapecore.arch.program import Opcode
from tapecore.gateware import simulation_test
from tapecore.gateware.control import *
from tapecore.model import Inputs, Outputs, transition


class ControlUnitTestCase(unittest.TestCase):
    def setUp(self):
        self.dut = ControlUnit()

    def set_inputs(self, ctx, inputs):
        for name, value in inputs._asdict().items():
            ctx.set(getattr(self.dut, name), value)

    def get_outputs(self, ctx):
        return Outputs(**{
            name: ctx.get(getattr(self.dut, name)) if name == "alu_source" else
                  bool(ctx.get(getattr(self.dut, name)))
            for name in Outputs._fields
        })

    @simulation_test(vcd_file=None)
    async def test_initial_state(self, ctx):
        self.assertEqual(ctx.get(self.dut.state), State.START)
        await ctx.tick()
        self.assertEqual(ctx.get(self.dut.state), State.FETCH)
        await ctx.tick()
        self.assertEqual(ctx.get(self.dut.state), State.DECODE)

    @simulation_test(vcd_file=None)
    async def test_matches_transition_function(self, ctx):
        opcodes = [*Opcode, 0x41, 0xff]
        for state, opcode, cell, in_valid, out_busy in itertools.product(
                State, opcodes, (0, 5), (False, True), (False, True)):
            inputs = Inputs(opcode=opcode, cell=cell, in_valid=in_valid, out_busy=out_busy)
            with self.subTest(state=state, inputs=inputs):
                ctx.set(self.dut.state, state)
                self.set_inputs(ctx, inputs)
                next_state, outputs = transition(state, inputs)
                self.assertEqual(self.get_outputs(ctx), outputs)
                await ctx.tick()
                self.assertEqual(ctx.get(self.dut.state), next_state)

    @simulation_test(vcd_file=None)
    async def test_halt_absorbing(self, ctx):
        ctx.set(self.dut.state, State.HALT)
        for opcode in Opcode:
            ctx.set(self.dut.opcode, opcode)
            ctx.set(self.dut.cell, 1)
            ctx.set(self.dut.in_valid, 1)
            await ctx.tick()
            self.assertEqual(ctx.get(self.dut.state), State.HALT)
            self.assertEqual(self.get_outputs(ctx), Outputs())

    @simulation_test(vcd_file=None)
    async def test_output_retry(self, ctx):
        ctx.set(self.dut.state, State.OUTPUT_WAIT)
        ctx.set(self.dut.out_busy, 1)
        for _ in range(3):
            self.assertEqual(ctx.get(self.dut.out_we), 1)
            self.assertEqual(ctx.get(self.dut.pc_inc), 0)
            await ctx.tick()
            self.assertEqual(ctx.get(self.dut.state), State.OUTPUT_WAIT)
        ctx.set(self.dut.out_busy, 0)
        self.assertEqual(ctx.get(self.dut.pc_inc), 1)
        await ctx.tick()
        self.assertEqual(ctx.get(self.dut.state), State.FETCH)

    @simulation_test(vcd_file=None)
    async def test_input_wait(self, ctx):
        ctx.set(self.dut.state, State.INPUT_WAIT)
        for _ in range(3):
            self.assertEqual(ctx.get(self.dut.in_req), 1)
            await ctx.tick()
            self.assertEqual(ctx.get(self.dut.state), State.INPUT_WAIT)
        ctx.set(self.dut.in_valid, 1)
        await ctx.tick()
        self.assertEqual(ctx.get(self.dut.state), State.INPUT_WRITE)
