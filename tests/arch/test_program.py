import unittest

from tapecore.arch.program import *


class OpcodeTestCase(unittest.TestCase):
    def test_encoding(self):
        self.assertEqual(Opcode.HALT, 0x00)
        self.assertEqual(Opcode.INC_POINTER, 0x3e)
        self.assertEqual(Opcode.DEC_POINTER, 0x3c)
        self.assertEqual(Opcode.INC_CELL, 0x2b)
        self.assertEqual(Opcode.DEC_CELL, 0x2d)
        self.assertEqual(Opcode.LOOP_OPEN, 0x5b)
        self.assertEqual(Opcode.LOOP_CLOSE, 0x5d)
        self.assertEqual(Opcode.OUTPUT, 0x2e)
        self.assertEqual(Opcode.INPUT, 0x2c)


class AssembleTestCase(unittest.TestCase):
    def test_text(self):
        self.assertEqual(assemble("++."), b"++.\x00")

    def test_bytes(self):
        self.assertEqual(assemble(b",."), b",.\x00")

    def test_halt_not_duplicated(self):
        self.assertEqual(assemble(b"+\x00"), b"+\x00")

    def test_comments_kept(self):
        self.assertEqual(assemble("add one: +"), b"add one: +\x00")

    def test_compact(self):
        self.assertEqual(assemble("add one: +\nprint it: .", compact=True), b"+.\x00")

    def test_compact_keeps_halt(self):
        self.assertEqual(assemble(b"+ \x00 +", compact=True), b"+\x00+\x00")

    def test_full_store(self):
        image = assemble(b"+" * (INSTRUCTION_STORE_DEPTH - 1))
        self.assertEqual(len(image), INSTRUCTION_STORE_DEPTH)

    def test_too_long(self):
        with self.assertRaisesRegex(ProgramError,
                r"^program is 4097 bytes long, but the instruction store only holds 4096$"):
            assemble(b"+" * INSTRUCTION_STORE_DEPTH)

    def test_non_byte_character(self):
        with self.assertRaisesRegex(ProgramError,
                r"^program contains a non-byte character at offset 1$"):
            assemble("+→")


class CheckBracketsTestCase(unittest.TestCase):
    def test_flat(self):
        with self.assertNoLogs("tapecore.arch.program", level="WARNING"):
            self.assertEqual(check_brackets(assemble("[-]>[-]")), 1)

    def test_none(self):
        self.assertEqual(check_brackets(assemble("+.")), 0)

    def test_nested(self):
        with self.assertLogs("tapecore.arch.program", level="WARNING") as logs:
            self.assertEqual(check_brackets(assemble("[[-]>[[-]]]")), 3)
        self.assertIn("loops are nested 3 deep", logs.output[0])

    def test_unmatched_close(self):
        with self.assertLogs("tapecore.arch.program", level="WARNING") as logs:
            check_brackets(assemble("+]"))
        self.assertIn("unmatched ']' at offset 0x001", logs.output[0])

    def test_unmatched_open(self):
        with self.assertLogs("tapecore.arch.program", level="WARNING") as logs:
            check_brackets(assemble("[+"))
        self.assertIn("1 unmatched '[' at end of program", logs.output[0])

    def test_stops_at_halt(self):
        self.assertEqual(check_brackets(b"[-]\x00[[]]"), 1)


class TapeImageTestCase(unittest.TestCase):
    def test_valid(self):
        self.assertEqual(tape_image([1, 2, 255]), [1, 2, 255])

    def test_too_long(self):
        with self.assertRaisesRegex(ProgramError,
                r"^tape image has 1025 cells, but the data tape only holds 1024$"):
            tape_image([0] * (DATA_TAPE_DEPTH + 1))

    def test_not_byte(self):
        with self.assertRaisesRegex(ProgramError,
                r"^tape cell 1 has value 256, which is not a byte$"):
            tape_image([0, 256])
