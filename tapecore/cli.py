import re
import os
import sys
import logging
import argparse
import textwrap
import platform

from . import __version__
from .arch.program import ProgramError, assemble, check_brackets, tape_image
from .gateware import ToolchainNotFound
from .model import Status, run_model
from .support.logging import dump_hex, dump_program


# When running as `-m tapecore.cli`, `__name__` is `__main__`, and the real name
# can be retrieved from `__loader__.name`.
logger = logging.getLogger(__loader__.name)


class TextHelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog):
        if "COLUMNS" in os.environ:
            columns = int(os.environ["COLUMNS"])
        else:
            try:
                columns, _ = os.get_terminal_size(sys.stderr.fileno())
            except OSError:
                columns = 80
        super().__init__(prog, width=columns, max_help_position=28)

    def _fill_text(self, text, width, indent):
        text = textwrap.dedent(text).strip()
        return "\n\n".join(
            textwrap.fill(paragraph, width, initial_indent=indent, subsequent_indent=indent)
            for paragraph in re.split(r"\n\s*\n", text))


def version_info():
    python_version = ".".join(map(str, sys.version_info[:3]))
    python_implementation = platform.python_implementation()
    return f"tapecore {__version__} ({python_implementation} {python_version})"


def tape_values(arg):
    try:
        return tape_image(int(value, 0) for value in arg.split(",") if value.strip())
    except (ValueError, ProgramError) as e:
        raise argparse.ArgumentTypeError(f"{arg!r} is not a valid tape image: {e}")


def positive_int(arg):
    value = int(arg, 0)
    if value <= 0:
        raise argparse.ArgumentTypeError(f"{arg} is not a positive integer")
    return value


def create_argparser():
    parser = argparse.ArgumentParser(formatter_class=TextHelpFormatter, description="""
        Run and build a minimal processor that executes programs written in an eight-operator
        tape language directly.
    """)

    parser.add_argument(
        "-V", "--version", action="version", version=version_info(),
        help="show version and exit")
    parser.add_argument(
        "-v", "--verbose", default=0, action="count",
        help="increase logging verbosity")
    parser.add_argument(
        "-q", "--quiet", default=0, action="count",
        help="decrease logging verbosity")
    parser.add_argument(
        "-L", "--log-file", metavar="FILE", type=argparse.FileType("w"),
        help="save log messages at highest verbosity to FILE")
    parser.add_argument(
        "--no-shorten", default=False, action="store_true",
        help="do not shorten sequences in logs")

    subparsers = parser.add_subparsers(dest="action", metavar="COMMAND")
    subparsers.required = True

    def add_program_arguments(p_action):
        p_action.add_argument(
            "program", metavar="PROGRAM", type=argparse.FileType("rb"),
            help="read program from PROGRAM")
        p_action.add_argument(
            "--compact", default=False, action="store_true",
            help="remove comments from the program before loading it")
        p_action.add_argument(
            "--tape", metavar="BYTES", type=tape_values, default=[],
            help="initialize the data tape with comma-separated BYTES")

    p_run = subparsers.add_parser(
        "run", formatter_class=TextHelpFormatter,
        help="run a program",
        description="""
        Run a program on the reference model or on the gateware in simulation, and write
        the bytes it outputs to standard output.

        The run ends when the program halts, when it requests input after all of the input
        has been consumed, or when the cycle limit is reached.
        """)
    add_program_arguments(p_run)
    p_run.add_argument(
        "-e", "--engine", choices=("model", "gateware"), default="model",
        help="execute on the reference model or on simulated gateware (default: %(default)s)")
    g_run_input = p_run.add_mutually_exclusive_group()
    g_run_input.add_argument(
        "-i", "--input", metavar="TEXT", type=str, default="",
        help="provide TEXT as program input")
    g_run_input.add_argument(
        "--input-file", metavar="FILE", type=argparse.FileType("rb"),
        help="provide contents of FILE as program input")
    p_run.add_argument(
        "--max-cycles", metavar="COUNT", type=positive_int, default=1_000_000,
        help="stop after COUNT cycles (default: %(default)s)")
    p_run.add_argument(
        "--busy-every", metavar="COUNT", type=positive_int, default=1,
        help="let the output device accept a byte only on every COUNT-th cycle")
    p_run.add_argument(
        "--vcd", metavar="FILE", type=argparse.FileType("w"),
        help="write a waveform of the run to FILE")

    p_build = subparsers.add_parser(
        "build", formatter_class=TextHelpFormatter,
        help="generate gateware for a program",
        description="""
        Generate a netlist of the processor, its memories, and its stream I/O, with the program
        stored in the instruction store.
        """)
    add_program_arguments(p_build)
    p_build.add_argument(
        "-t", "--type", metavar="TYPE", choices=("rtlil", "verilog"), default="rtlil",
        help="netlist format: rtlil or verilog (default: %(default)s)")
    p_build.add_argument(
        "-f", "--filename", metavar="FILENAME", type=str,
        help="write netlist to FILENAME (default: <program>.il or <program>.v)")
    p_build.add_argument(
        "--name", metavar="NAME", type=str, default="tapecore",
        help="name of the top-level module (default: %(default)s)")

    return parser


class TerminalFormatter(logging.Formatter):
    DEFAULT_COLORS = {
        "TRACE"   : "\033[0m",
        "DEBUG"   : "\033[36m",
        "INFO"    : "\033[1m",
        "WARNING" : "\033[1;33m",
        "ERROR"   : "\033[1;31m",
        "CRITICAL": "\033[1;41m",
    }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.colors = dict(self.DEFAULT_COLORS)
        for color_override in os.getenv("TAPECORE_COLORS", "").split(":"):
            if color_override:
                level, color = color_override.split("=", 2)
                self.colors[level] = f"\033[{color}m"

    def format(self, record):
        color = self.colors.get(record.levelname, "")
        # tapecore.gateware.control → t.gateware.control
        record.name = record.name.replace("tapecore.", "t.")
        return f"{color}{super().format(record)}\033[0m"


def create_logger():
    root_logger = logging.getLogger()

    term_formatter_args = {"style": "{",
        "fmt": "{levelname[0]:s}: {name:s}: {message:s}"}
    term_handler = logging.StreamHandler()
    if sys.stderr.isatty() and sys.platform != 'win32':
        term_handler.setFormatter(TerminalFormatter(**term_formatter_args))
    else:
        term_handler.setFormatter(logging.Formatter(**term_formatter_args))
    root_logger.addHandler(term_handler)
    return term_handler


def configure_logger(args, term_handler):
    root_logger = logging.getLogger()

    level = logging.INFO + args.quiet * 10 - args.verbose * 10
    if level < 0 or args.no_shorten:
        dump_hex.limit = dump_program.limit = None

    if args.log_file:
        file_formatter_args = {"style": "{",
            "fmt": "[{asctime:s}] {levelname:s}: {name:s}: {message:s}"}
        file_handler = logging.StreamHandler(args.log_file)
        file_handler.setFormatter(logging.Formatter(**file_formatter_args))
        root_logger.addHandler(file_handler)

        term_handler.setLevel(level)
        root_logger.setLevel(logging.TRACE)
    else:
        root_logger.setLevel(level)


def load_program(args):
    with args.program:
        image = assemble(args.program.read(), compact=args.compact)
    logger.info("loaded %d-byte program from %s", len(image), args.program.name)
    logger.debug("program: %s", dump_program(image))
    check_brackets(image)
    return image


def main():
    term_handler = create_logger()

    args = create_argparser().parse_args()
    configure_logger(args, term_handler)

    try:
        image = load_program(args)

        if args.action == "run":
            if args.input_file is not None:
                with args.input_file:
                    data = args.input_file.read()
            else:
                try:
                    data = args.input.encode("latin-1")
                except UnicodeEncodeError as e:
                    raise ProgramError(f"input contains a non-byte character at offset {e.start}")

            if args.busy_every > 1:
                output_busy = lambda cycle: cycle % args.busy_every != 0
            else:
                output_busy = None

            if args.engine == "model":
                run = run_model
            else:
                from .simulation import run_gateware as run
            result = run(image, input=data, tape=args.tape, max_cycles=args.max_cycles,
                         output_busy=output_busy, vcd_file=args.vcd)
            if args.vcd is not None:
                args.vcd.close()

            sys.stdout.buffer.write(result.output)
            sys.stdout.buffer.flush()

            if result.status == Status.HALTED:
                logger.info("halted after %d cycles", result.cycles)
            elif result.status == Status.AWAITING_INPUT:
                logger.warning("stalled waiting for input after %d cycles", result.cycles)
                return 1
            else:
                logger.warning("still %s after %d cycles", result.status.value, result.cycles)
                return 1

        if args.action == "build":
            from amaranth.back import rtlil, verilog
            from amaranth._toolchain.yosys import YosysError
            from .gateware.system import TapeMachine

            machine = TapeMachine(image, tape=args.tape)
            program_name, _ = os.path.splitext(os.path.basename(args.program.name))
            if args.type == "rtlil":
                logger.info("generating RTLIL for program %r", program_name)
                netlist = rtlil.convert(machine, name=args.name)
                filename = args.filename or program_name + ".il"
            if args.type == "verilog":
                logger.info("generating Verilog for program %r", program_name)
                try:
                    netlist = verilog.convert(machine, name=args.name)
                except YosysError as e:
                    raise ToolchainNotFound(f"cannot generate Verilog: {e}") from e
                filename = args.filename or program_name + ".v"
            with open(filename, "w") as f:
                f.write(netlist)

    # Program-related errors
    except ProgramError as e:
        logger.error(e)
        return 2

    # Environment-related errors
    except OSError as e:
        logger.error(e)
        return 2

    except ToolchainNotFound as e:
        logger.error(e)
        return 3

    # User interruption
    except KeyboardInterrupt:
        logger.warning("interrupted")
        return 130 # 128 + SIGINT

    return 0


# This entry point is invoked via `console_scripts` when installing the package.
def run_main():
    exit(main())


# This entry point is invoked when running `python -m tapecore.cli`.
if __name__ == "__main__":
    run_main()
