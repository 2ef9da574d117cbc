"""Tests for output sinks and the log path pre-flight."""

import os

import pytest

from command_scheduler.core.errors import ConfigError
from command_scheduler.execution.sinks import (
    FileSink,
    NullSink,
    OutputSink,
    check_log_path,
    is_disabled,
    make_sink,
)


class TestMakeSink:
    @pytest.mark.parametrize("log_path", [None, "", "disabled", "DISABLED", "false"])
    def test_disabled_log_path(self, log_path):
        assert isinstance(make_sink(log_path, "job.log"), NullSink)

    @pytest.mark.parametrize("log_file", [None, "", "   "])
    def test_job_without_log_file(self, tmp_path, log_file):
        assert isinstance(make_sink(str(tmp_path), log_file), NullSink)

    def test_file_sink(self, tmp_path):
        sink = make_sink(str(tmp_path), " job.log ")
        assert isinstance(sink, FileSink)
        assert sink.path == tmp_path / "job.log"

    def test_sinks_satisfy_protocol(self, tmp_path):
        assert isinstance(NullSink(), OutputSink)
        assert isinstance(FileSink(tmp_path / "x.log"), OutputSink)


class TestFileSink:
    def test_appends(self, tmp_path):
        path = tmp_path / "job.log"
        path.write_text("previous run\n")

        with FileSink(path) as sink:
            sink.writeln("this run")

        assert path.read_text() == "previous run\nthis run\n"

    def test_lazy_open(self, tmp_path):
        """Nothing written, no file created."""
        path = tmp_path / "quiet.log"
        with FileSink(path) as sink:
            sink.write("")
        assert not path.exists()

    def test_open_creates_file(self, tmp_path):
        path = tmp_path / "job.log"
        with FileSink(path) as sink:
            sink.open()
        assert path.read_text() == ""

    def test_open_missing_directory(self, tmp_path):
        sink = FileSink(tmp_path / "missing-subdir" / "out.log")
        with pytest.raises(FileNotFoundError):
            sink.open()

    def test_null_sink_open(self):
        NullSink().open()

    def test_close_is_idempotent(self, tmp_path):
        sink = FileSink(tmp_path / "job.log")
        sink.write("x")
        sink.close()
        sink.close()


class TestCheckLogPath:
    def test_disabled(self):
        assert is_disabled("disabled")
        check_log_path("disabled")
        check_log_path(None)

    def test_existing_directory(self, tmp_path):
        check_log_path(str(tmp_path))

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ConfigError, match="SCHEDULER_LOG_PATH") as exc_info:
            check_log_path(str(tmp_path / "missing"))
        assert exc_info.value.context["log_path"] == str(tmp_path / "missing")

    def test_file_instead_of_directory(self, tmp_path):
        path = tmp_path / "file"
        path.write_text("")
        with pytest.raises(ConfigError):
            check_log_path(str(path))

    @pytest.mark.skipif(
        not hasattr(os, "geteuid") or os.geteuid() == 0,
        reason="root can write anywhere",
    )
    def test_read_only_directory(self, tmp_path):
        path = tmp_path / "ro"
        path.mkdir()
        path.chmod(0o500)
        try:
            with pytest.raises(ConfigError, match="not found or not writable"):
                check_log_path(str(path))
        finally:
            path.chmod(0o700)
