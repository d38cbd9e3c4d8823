import unittest
from amaranth import *

from tapecore.gateware import simulation_test
from tapecore.gateware.stream import *


class AdapterTestbench(Elaboratable):
    def __init__(self, adapter):
        self.adapter = adapter

    def elaborate(self, platform):
        m = Module()
        # The adapters are combinational; the stream helpers need a clock to count transfers.
        m.domains.sync = ClockDomain()
        m.submodules.adapter = self.adapter
        return m


class InputAdapterTestCase(unittest.TestCase):
    def setUp(self):
        self.adapter = InputAdapter()
        self.dut = AdapterTestbench(self.adapter)

    @simulation_test
    async def test_idle(self, ctx):
        ctx.set(self.adapter.i.valid, 1)
        ctx.set(self.adapter.i.payload, 0x41)
        self.assertEqual(ctx.get(self.adapter.port.valid), 1)
        self.assertEqual(ctx.get(self.adapter.port.data), 0x41)
        self.assertEqual(ctx.get(self.adapter.i.ready), 0)

    @simulation_test
    async def test_transfer(self, ctx):
        ctx.set(self.adapter.port.req, 1)
        await stream_put(ctx, self.adapter.i, 0x41)
        self.assertEqual(ctx.get(self.adapter.port.data), 0x41)
        self.assertEqual(ctx.get(self.adapter.port.valid), 0)

    @simulation_test
    async def test_transfer_waits_for_request(self, ctx):
        ctx.set(self.adapter.i.payload, 0x41)
        ctx.set(self.adapter.i.valid, 1)
        for _ in range(3):
            _, _, ready = await ctx.tick().sample(self.adapter.i.ready)
            self.assertEqual(ready, 0)
        ctx.set(self.adapter.port.req, 1)
        _, _, ready = await ctx.tick().sample(self.adapter.i.ready)
        self.assertEqual(ready, 1)


class OutputAdapterTestCase(unittest.TestCase):
    def setUp(self):
        self.adapter = OutputAdapter()
        self.dut = AdapterTestbench(self.adapter)

    @simulation_test
    async def test_busy(self, ctx):
        ctx.set(self.adapter.port.we, 1)
        ctx.set(self.adapter.port.data, 0x42)
        self.assertEqual(ctx.get(self.adapter.port.busy), 1)
        self.assertEqual(ctx.get(self.adapter.o.valid), 1)
        self.assertEqual(ctx.get(self.adapter.o.payload), 0x42)

    @simulation_test
    async def test_transfer(self, ctx):
        ctx.set(self.adapter.port.we, 1)
        ctx.set(self.adapter.port.data, 0x42)
        self.assertEqual(await stream_get(ctx, self.adapter.o), 0x42)
        self.assertEqual(ctx.get(self.adapter.port.busy), 1)
