import os
import tempfile
import unittest

from tapecore.arch.program import assemble
from tapecore.model import Status, run_model
from tapecore.simulation import run_gateware


class GatewareEquivalenceTestCase(unittest.TestCase):
    def assertEquivalent(self, source, **kwargs):
        image = assemble(source)
        expected = run_model(image, **kwargs)
        actual   = run_gateware(image, **kwargs)
        self.assertEqual(actual, expected)
        return actual

    def test_increment_output(self):
        result = self.assertEquivalent("++.", max_cycles=1000)
        self.assertEqual(result.output, b"\x02")
        self.assertEqual(result.cycles, 17)

    def test_pointer_wraps(self):
        self.assertEquivalent("<+.>>>+.<<<.", max_cycles=1000)

    def test_echo(self):
        result = self.assertEquivalent(",.>,.<.", input=b"AB", max_cycles=1000)
        self.assertEqual(result.output, b"ABA")

    def test_awaiting_input(self):
        result = self.assertEquivalent(",.,.", input=b"A", max_cycles=1000)
        self.assertEqual(result.status, Status.AWAITING_INPUT)
        self.assertEqual(result.output, b"A")

    def test_other_bytes(self):
        self.assertEquivalent("a+b.", max_cycles=1000)

    def test_loop(self):
        result = self.assertEquivalent("[-].", tape=[3], max_cycles=1000)
        self.assertEqual(result.status, Status.HALTED)

    def test_loop_skipped(self):
        self.assertEquivalent("[+++].", tape=[0], max_cycles=1000)

    def test_nested_loop(self):
        self.assertEquivalent("[[-]].", tape=[2], max_cycles=1000)

    def test_nested_loop_unbounded(self):
        result = self.assertEquivalent("[>[-]<-].", tape=[2, 1], max_cycles=2000)
        self.assertEqual(result.status, Status.RUNNING)

    def test_skip_does_not_count_brackets(self):
        self.assertEquivalent("[[-]+].", tape=[0], max_cycles=2000)

    def test_output_busy(self):
        result = self.assertEquivalent("+.+.+.", max_cycles=1000,
                                       output_busy=lambda cycle: cycle % 3 != 0)
        self.assertEqual(result.output, b"\x01\x02\x03")

    def test_awaiting_output(self):
        result = self.assertEquivalent("+.", max_cycles=100, output_busy=lambda cycle: True)
        self.assertEqual(result.status, Status.AWAITING_OUTPUT)

    def test_halt_midway(self):
        self.assertEquivalent("+.\x00+.", max_cycles=1000)

    def test_vcd(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            vcd_path = os.path.join(tmpdir, "run.vcd")
            run_gateware(assemble("+."), max_cycles=100, vcd_file=vcd_path)
            with open(vcd_path) as f:
                self.assertIn("$enddefinitions", f.read())
