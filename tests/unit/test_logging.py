"""Tests for centralized logging system."""

from __future__ import annotations

from proman.core.config import ConfigResolver
from proman.core.log_bus import LogRecord, get_log_bus
from proman.core.logging import (
    VerbosityLevel,
    apply_logging_policy,
    get_logger,
    get_verbosity,
    install_file_sink,
    set_console_enabled,
    set_log_sink,
    set_verbosity,
)


class TestVerbosityLevel:
    """Test VerbosityLevel enum."""

    def test_verbosity_values(self):
        """Test verbosity level values."""
        assert VerbosityLevel.QUIET == 0
        assert VerbosityLevel.NORMAL == 1
        assert VerbosityLevel.VERBOSE == 2
        assert VerbosityLevel.DEBUG == 3

    def test_verbosity_ordering(self):
        """Test verbosity level ordering."""
        assert VerbosityLevel.QUIET < VerbosityLevel.NORMAL
        assert VerbosityLevel.NORMAL < VerbosityLevel.VERBOSE
        assert VerbosityLevel.VERBOSE < VerbosityLevel.DEBUG


class TestLoggingSetup:
    """Test logging setup functions."""

    def test_set_get_verbosity(self):
        """Test setting and getting verbosity."""
        set_verbosity(2)
        assert get_verbosity() == VerbosityLevel.VERBOSE

        set_verbosity(VerbosityLevel.DEBUG)
        assert get_verbosity() == VerbosityLevel.DEBUG

    def test_apply_logging_policy(self, tmp_path):
        """Test that a resolved policy sets the verbosity."""
        resolver = ConfigResolver(
            cli_args={"logging": {"level": "debug"}},
            user_config_path=tmp_path / "none.yaml",
            system_config_path=tmp_path / "none.yaml",
        )
        apply_logging_policy(resolver.resolve_logging_policy())
        assert get_verbosity() == VerbosityLevel.DEBUG

        resolver = ConfigResolver(
            cli_args={"logging": {"level": "quiet"}},
            user_config_path=tmp_path / "none.yaml",
            system_config_path=tmp_path / "none.yaml",
        )
        apply_logging_policy(resolver.resolve_logging_policy())
        assert get_verbosity() == VerbosityLevel.QUIET

    def test_verbosity_filters_records(self):
        collected: list[LogRecord] = []
        get_log_bus().subscribe_all(collected.append)

        set_verbosity(VerbosityLevel.QUIET)
        logger = get_logger("filter_test")
        logger.info("hidden")
        logger.verbose("hidden")
        logger.warning("shown")

        assert [r.plain for r in collected] == ["[warning] shown"]


def test_log_bus_subscribe_all_receives_record_plain() -> None:
    collected: list[LogRecord] = []
    get_log_bus().subscribe_all(collected.append)

    logger = get_logger("logbus_test")
    logger.info("hello")

    assert len(collected) == 1
    assert collected[0].plain == "[info] hello"
    assert collected[0].logger_name == "logbus_test"


def test_log_bus_subscribe_level_filters() -> None:
    collected: list[LogRecord] = []
    get_log_bus().subscribe("ERROR", collected.append)

    logger = get_logger("logbus_test")
    logger.info("hello")
    logger.error("boom")

    assert [r.level_name for r in collected] == ["ERROR"]
    assert collected[0].plain == "[error] boom"


def test_log_bus_callback_exception_is_suppressed() -> None:
    def _boom(_rec: LogRecord) -> None:
        raise RuntimeError("fail")

    get_log_bus().subscribe_all(_boom)

    logger = get_logger("logbus_test")
    logger.info("hello")


def test_set_log_sink_adapter_receives_plain_and_can_be_removed() -> None:
    received: list[str] = []

    set_log_sink(received.append)

    logger = get_logger("logbus_test")
    logger.info("hello")
    assert received == ["[info] hello"]

    set_log_sink(None)
    logger.info("second")
    assert received == ["[info] hello"]


def test_console_disabled_still_publishes(capsys) -> None:
    collected: list[LogRecord] = []
    get_log_bus().subscribe_all(collected.append)

    set_console_enabled(False)
    get_logger("console_test").error("quiet please")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err == ""
    assert [r.plain for r in collected] == ["[error] quiet please"]


def test_console_output_streams(capsys) -> None:
    logger = get_logger("console_test")
    logger.info("to stdout")
    logger.error("to stderr")

    captured = capsys.readouterr()
    assert "[info] to stdout" in captured.out
    assert "[error] to stderr" in captured.err


def test_install_file_sink(tmp_path) -> None:
    target = tmp_path / "logs" / "proman.log"
    remove = install_file_sink(target)

    logger = get_logger("file_test")
    logger.info("first")
    remove()
    logger.info("second")

    assert target.read_text(encoding="utf-8") == "file_test: [info] first\n"
