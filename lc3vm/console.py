"""
Console collaborators for the LC3 machine.

A console supplies four operations: ``key_available()`` (never blocks),
``getc()`` (blocks, returns -1 at end of input), ``write(data)`` and
``flush()``.
"""

from contextlib import contextmanager
import os
import select
import sys
import termios
import tty

class Console(object):
    """
    The process terminal: reads stdin a byte at a time and writes raw
    bytes to stdout.
    """
    def __init__(self, stdin=None, stdout=None):
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout

    def fileno(self):
        return self.stdin.fileno()

    def key_available(self):
        readable, _, _ = select.select([self.fileno()], [], [], 0)
        return bool(readable)

    def getc(self):
        data = os.read(self.fileno(), 1)
        if not data:
            return -1
        return data[0]

    def write(self, data):
        self.stdout.buffer.write(data)

    def flush(self):
        self.stdout.flush()

    @contextmanager
    def raw_mode(self):
        """
        Turn off echo and line buffering on a terminal stdin, and put
        the saved settings back however the block is left.
        """
        fd = self.fileno()
        if not os.isatty(fd):
            yield self
            return
        old_settings = termios.tcgetattr(fd)
        try:
            tty.setcbreak(fd)
            yield self
        finally:
            termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)

class BufferConsole(object):
    """
    An in-memory console: input comes from a preloaded byte string and
    output is collected in ``output``.
    """
    def __init__(self, data=b""):
        self.input = bytearray(data)
        self.output = bytearray()
        self.flushes = 0

    def feed(self, data):
        self.input.extend(data)

    def key_available(self):
        return len(self.input) > 0

    def getc(self):
        if not self.input:
            return -1
        return self.input.pop(0)

    def write(self, data):
        self.output.extend(data)

    def flush(self):
        self.flushes += 1

    def getvalue(self):
        return bytes(self.output)
