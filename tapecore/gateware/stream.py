from amaranth import *
from amaranth.lib import wiring, stream
from amaranth.lib.wiring import In, Out

from .ports import InputPortSignature, OutputPortSignature


__all__ = ["stream_put", "stream_get", "InputAdapter", "OutputAdapter"]


async def stream_put(ctx, stream, payload):
    ctx.set(stream.payload, payload)
    ctx.set(stream.valid, 1)
    await ctx.tick().until(stream.ready)
    ctx.set(stream.valid, 0)


async def stream_get(ctx, stream):
    ctx.set(stream.ready, 1)
    payload, = await ctx.tick().sample(stream.payload).until(stream.valid)
    ctx.set(stream.ready, 0)
    return payload


class InputAdapter(wiring.Component):
    """Feeds bytes from a stream to the processor input handshake.

    A byte is transferred from ``i`` when the processor requests input while it is valid.
    """
    i:    In(stream.Signature(8))
    port: In(InputPortSignature())

    def elaborate(self, platform):
        m = Module()

        m.d.comb += [
            self.port.data.eq(self.i.payload),
            self.port.valid.eq(self.i.valid),
            self.i.ready.eq(self.port.req),
        ]

        return m


class OutputAdapter(wiring.Component):
    """Feeds bytes from the processor output handshake to a stream.

    The output device reports itself busy while ``o`` is not ready.
    """
    port: In(OutputPortSignature())
    o:    Out(stream.Signature(8))

    def elaborate(self, platform):
        m = Module()

        m.d.comb += [
            self.o.payload.eq(self.port.data),
            self.o.valid.eq(self.port.we),
            self.port.busy.eq(~self.o.ready),
        ]

        return m
