import functools
from amaranth.sim import Simulator


__all__ = ["ToolchainNotFound", "simulation_test"]


class ToolchainNotFound(Exception):
    pass


def simulation_test(case=None, *, vcd_file="test.vcd"):
    """
    Run a test case method as an Amaranth testbench.

    The test case must set ``self.dut`` in ``setUp``; the method is called as
    ``await case(self, ctx)`` with the simulator context. If the test case defines
    ``simulationSetUp``, it is awaited first.
    """
    def configure_wrapper(case):
        @functools.wraps(case)
        def wrapper(self):
            async def testbench(ctx):
                if hasattr(self, "simulationSetUp"):
                    await self.simulationSetUp(ctx)
                await case(self, ctx)

            sim = Simulator(self.dut)
            sim.add_clock(1e-8)
            sim.add_testbench(testbench)
            if vcd_file is None:
                sim.run()
            else:
                with sim.write_vcd(vcd_file):
                    sim.run()
        return wrapper

    if case is None:
        return configure_wrapper
    else:
        return configure_wrapper(case)
