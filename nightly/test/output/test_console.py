"""Tests for nightly.output.console module."""

from __future__ import annotations

import pytest

from nightly.output.console import (
    ConsoleProtocol,
    JobConsole,
    MockConsole,
    OutputRecord,
    RichConsole,
    Style,
)


class TestStyle:
    def test_str_conversion(self) -> None:
        assert str(Style.SUCCESS) == "success"
        assert str(Style.DIM) == "dim"


class TestMockConsole:
    """Test MockConsole for testing purposes."""

    def test_print_captures_message(self) -> None:
        console = MockConsole()
        console.print("hello")
        assert console.outputs == [OutputRecord("hello", Style.DEFAULT)]

    def test_severity_helpers(self) -> None:
        console = MockConsole()
        console.success("done")
        console.warning("careful")
        console.error("broken")
        assert console.messages == ["OK done", "warning: careful", "error: broken"]
        assert console.has_error()

    def test_find(self) -> None:
        console = MockConsole()
        console.print("cargo build --release", Style.DIM)
        console.print("strip target/release/minesweeper", Style.DIM)
        assert len(console.find("cargo")) == 1
        assert console.find("missing") == []

    def test_satisfies_protocol(self) -> None:
        console: ConsoleProtocol = MockConsole()
        console.newline()


class TestJobConsole:
    def test_prefixes_every_line(self) -> None:
        inner = MockConsole()
        job = JobConsole(inner, "linux")
        job.print("cargo build", Style.DIM)
        job.error("build failed")
        assert inner.outputs[0] == OutputRecord("[linux] cargo build", Style.DIM)
        assert inner.messages[1] == "error: [linux] build failed"


class TestRichConsole:
    def test_brackets_are_not_markup(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole()
        console.print("[linux] cargo build")
        console.error("[web] trunk missing")
        out = capsys.readouterr().out
        assert "[linux] cargo build" in out
        assert "[web] trunk missing" in out
