# tests/test_main.py
# Command line entry point and the stdio console.

from contextlib import contextmanager
import io
import os

import pytest

import lc3vm.__main__ as cli
from lc3vm.console import BufferConsole, Console


class FakeConsole(BufferConsole):
    instances = []

    def __init__(self):
        super().__init__()
        self.raw = False
        self.restored = False
        FakeConsole.instances.append(self)

    @contextmanager
    def raw_mode(self):
        self.raw = True
        try:
            yield self
        finally:
            self.restored = True


@pytest.fixture
def fake_console(monkeypatch):
    FakeConsole.instances = []
    monkeypatch.setattr(cli, "Console", FakeConsole)
    return FakeConsole


class TestMain:
    def test_no_arguments(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            cli.main([])
        assert excinfo.value.code == 2
        assert "usage" in capsys.readouterr().err

    def test_missing_image(self, fake_console, tmp_path, capsys):
        missing = str(tmp_path / "missing.obj")
        assert cli.main([missing]) == 1
        assert "failed to load image: %s" % missing in capsys.readouterr().err
        assert not fake_console.instances[0].raw

    def test_runs_to_halt(self, fake_console, make_image):
        # LEA R0, +2 / PUTS / HALT / "ok"
        path = make_image(0x3000, [0xE002, 0xF022, 0xF025, ord("o"), ord("k"), 0])
        assert cli.main([path]) == 0
        console = fake_console.instances[0]
        assert console.getvalue() == b"okHALT\n"
        assert console.raw and console.restored

    def test_images_loaded_in_order(self, fake_console, make_image):
        # LEA R0, +2 / PUTS / HALT / "a"; the second image replaces the "a"
        first = make_image(0x3000, [0xE002, 0xF022, 0xF025, ord("a"), 0], name="first.obj")
        second = make_image(0x3003, [ord("b")], name="second.obj")
        assert cli.main([first, second]) == 0
        assert fake_console.instances[0].getvalue() == b"bHALT\n"

    def test_reserved_opcode(self, fake_console, make_image, capsys):
        path = make_image(0x3000, [0xD000])
        assert cli.main([path]) == 3
        err = capsys.readouterr().err
        assert "Runtime error at x3000" in err
        assert "reserved" in err
        assert fake_console.instances[0].restored

    def test_keyboard_interrupt_restores_terminal(self, fake_console, make_image, monkeypatch):
        path = make_image(0x3000, [0xF025])

        def interrupted(self):
            raise KeyboardInterrupt()

        monkeypatch.setattr(cli.LC3, "run", interrupted)
        assert cli.main([path]) == 130
        assert fake_console.instances[0].restored


class TestConsole:
    def test_pipe_input(self):
        read_fd, write_fd = os.pipe()
        with os.fdopen(read_fd, "rb", buffering=0) as stdin:
            console = Console(stdin=stdin)
            assert not console.key_available()
            os.write(write_fd, b"hi")
            assert console.key_available()
            assert console.getc() == ord("h")
            assert console.getc() == ord("i")
            os.close(write_fd)
            assert console.getc() == -1

    def test_raw_mode_ignores_non_terminal(self):
        read_fd, write_fd = os.pipe()
        try:
            with os.fdopen(read_fd, "rb", buffering=0) as stdin:
                console = Console(stdin=stdin)
                with console.raw_mode() as entered:
                    assert entered is console
        finally:
            os.close(write_fd)

    def test_write_bytes(self):
        stdout = io.TextIOWrapper(io.BytesIO(), encoding="utf-8")
        console = Console(stdout=stdout)
        console.write(b"A\xff")
        console.flush()
        assert stdout.buffer.getvalue() == b"A\xff"
