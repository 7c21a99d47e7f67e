"""rpnscript CLI — run programs from arguments, a file, stdin, or a REPL."""

from __future__ import annotations

import logging
import sys
from typing import TextIO

from .builtins import new_vm
from .emit import format_stack
from .parse import ParseError, parse
from .vm import Vm, VmError


USAGE: str = """\
rpnscript [OPTIONS] [PROGRAM ...]

Run rpnscript programs. PROGRAM arguments and -f files run in command-line
order on one shared stack. With neither, reads stdin (or starts a REPL on a
terminal).

Options:
  -f, --file FILE     Run the contents of FILE as one program
  -i, --interactive   Start a REPL after running any programs
  --int-width BITS    Use fixed-width signed integers of BITS bits
  -v, --verbose       Log interpreter events to stderr
  -h, --help          Show this help message
"""

PROMPT = "> "
CONTINUATION_PROMPT = ". "


def run_program(vm: Vm, source: str) -> str | None:
    """Parse and run source. Returns an error message, or None on success."""
    try:
        block = parse(source)
    except ParseError as e:
        return "parse error: " + str(e)
    try:
        vm.run_block(block)
    except VmError as e:
        return str(e)
    return None


def repl(vm: Vm, stdin: TextIO, stdout: TextIO) -> int:
    """Read-eval-print loop. Keeps buffering while the input could still parse."""
    buffer = ""
    while True:
        stdout.write(CONTINUATION_PROMPT if buffer else PROMPT)
        stdout.flush()
        line = stdin.readline()
        if line == "":
            stdout.write("\n")
            if buffer:
                # Input ended while a block, string or comment was still open.
                try:
                    parse(buffer)
                except ParseError as e:
                    stdout.write("error: " + str(e) + "\n")
            return 0
        buffer += line
        try:
            block = parse(buffer)
        except ParseError as e:
            if e.recoverable:
                continue
            stdout.write("error: " + str(e) + "\n")
            buffer = ""
            continue
        buffer = ""
        try:
            vm.run_block(block)
        except VmError as e:
            stdout.write("error: " + str(e) + "\n")
        stdout.write(format_stack(vm.stack) + "\n")


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    # (path, None) for a -f FILE, (None, source) for a program argument, in
    # command-line order.
    sources: list[tuple[str | None, str | None]] = []
    interactive = False
    verbose = False
    int_width: int | None = None
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return 0
        elif arg == "--interactive" or arg == "-i":
            interactive = True
            i += 1
        elif arg == "--verbose" or arg == "-v":
            verbose = True
            i += 1
        elif arg == "--file" or arg == "-f" or arg == "--int-width":
            if i + 1 >= len(args):
                print("rpnscript: " + arg + " requires an argument", file=sys.stderr)
                return 2
            value = args[i + 1]
            if arg == "--int-width":
                if not value.isdigit() or int(value) < 2:
                    print("rpnscript: invalid --int-width '" + value + "'", file=sys.stderr)
                    return 2
                int_width = int(value)
            else:
                sources.append((value, None))
            i += 2
        elif arg == "--":
            sources.extend((None, p) for p in args[i + 1 :])
            break
        elif arg.startswith("-") and len(arg) > 1 and not arg[1].isdigit():
            print("rpnscript: unknown flag '" + arg + "'", file=sys.stderr)
            return 2
        else:
            sources.append((None, arg))
            i += 1

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s"
        )

    vm = new_vm(int_width=int_width)
    status = 0

    for filepath, program in sources:
        if filepath is not None:
            try:
                with open(filepath, encoding="utf-8") as f:
                    source = f.read()
            except FileNotFoundError:
                print("rpnscript: " + filepath + ": No such file or directory", file=sys.stderr)
                return 1
            except (OSError, ValueError) as e:
                print("rpnscript: " + filepath + ": " + str(e), file=sys.stderr)
                return 1
            err = run_program(vm, source)
            if err is not None:
                print("rpnscript: " + filepath + ": " + err, file=sys.stderr)
                return 1
            print(format_stack(vm.stack))
            continue
        err = run_program(vm, program)
        if err is None:
            print("program: {" + program + "} => stack: " + format_stack(vm.stack))
        else:
            print("program: {" + program + "} => error: " + err)
            status = 1

    if interactive or (not sources and sys.stdin.isatty()):
        return repl(vm, sys.stdin, sys.stdout) or status

    if not sources:
        err = run_program(vm, sys.stdin.read())
        if err is not None:
            print("rpnscript: " + err, file=sys.stderr)
            return 1
        print(format_stack(vm.stack))

    return status


if __name__ == "__main__":
    sys.exit(main())
