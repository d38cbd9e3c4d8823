from amaranth.lib import wiring
from amaranth.lib.wiring import In, Out


__all__ = [
    "InstructionBusSignature", "DataBusSignature", "InputPortSignature", "OutputPortSignature",
]


class InstructionBusSignature(wiring.Signature):
    """Instruction store interface, as seen by the processor.

    When ``en`` is asserted, the byte at ``addr`` is available on ``data`` one cycle later.
    ``data`` holds its value while ``en`` is deasserted.
    """
    def __init__(self, addr_width):
        super().__init__({
            "addr": Out(addr_width),
            "en":   Out(1),
            "data": In(8),
        })


class DataBusSignature(wiring.Signature):
    """Data tape interface, as seen by the processor.

    When ``en`` is asserted, the byte at ``addr`` is available on ``r_data`` one cycle later.
    When ``we`` is asserted together with ``en``, ``w_data`` is written to ``addr``, and is also
    the byte returned on ``r_data`` one cycle later.
    """
    def __init__(self, addr_width):
        super().__init__({
            "addr":   Out(addr_width),
            "en":     Out(1),
            "we":     Out(1),
            "w_data": Out(8),
            "r_data": In(8),
        })


class InputPortSignature(wiring.Signature):
    """Input device handshake, as seen by the processor.

    ``req`` is held asserted until ``valid`` is observed; the byte on ``data`` during the cycle in
    which both are asserted is consumed.
    """
    def __init__(self):
        super().__init__({
            "data":  In(8),
            "valid": In(1),
            "req":   Out(1),
        })


class OutputPortSignature(wiring.Signature):
    """Output device handshake, as seen by the processor.

    The byte on ``data`` is accepted during a cycle in which ``we`` is asserted and ``busy`` is
    deasserted; otherwise the processor holds ``we`` asserted and retries.
    """
    def __init__(self):
        super().__init__({
            "data": Out(8),
            "busy": In(1),
            "we":   Out(1),
        })
