import sys
import os
import time
from enum import Enum
from typing import NamedTuple, Any, TypeAlias
from contextvars import ContextVar
from .. import config

# SEE: https://no-color.org/
NO_COLOR: bool = "NO_COLOR" in os.environ
FORCE_COLOR: bool = "FORCE_COLOR" in os.environ
COLOR: bool = FORCE_COLOR or NO_COLOR is False

BOLD: str = "\033[1m" if COLOR else ""
RESET: str = "\033[0m" if COLOR else ""

TValue: TypeAlias = bool | int | float | str | bytes | None

LogOrigin: ContextVar[str] = ContextVar("LogOrigin", default="chunked")


class LogLevel(Enum):
	Debug = 0
	Info = 10
	Warning = 30
	Error = 40


LOG_LEVEL_COLOR = {
	LogLevel.Debug: 31,
	LogLevel.Info: 75,
	LogLevel.Warning: 202,
	LogLevel.Error: 160,
}


def parseLevel(name: str) -> LogLevel:
	for level in LogLevel:
		if level.name.lower() == name.strip().lower():
			return level
	return LogLevel.Warning


LOG_LEVEL: LogLevel = parseLevel(config.LOG_LEVEL)


class LogEntry(NamedTuple):
	origin: str
	time: float
	level: LogLevel = LogLevel.Info
	message: str | None = None
	value: TValue = None
	context: dict[str, TValue] | None = None


def color(code: int) -> str:
	return f"\033[0;38;5;{code}m" if COLOR else ""


def formatData(value: Any) -> str:
	if value is None or value == {}:
		return "◌"
	elif isinstance(value, dict):
		return " ".join(f"{BOLD}{k}{RESET}={formatData(v)}" for k, v in value.items())
	elif isinstance(value, str):
		return repr(value) if " " in value else value
	elif isinstance(value, bool):
		return "✓" if value else "✗"
	elif isinstance(value, float):
		return f"{value:0.2f}"
	else:
		return str(value)


def logged(level: LogLevel) -> bool:
	"""Tells if entries of the given level are currently output. This is
	used to guard against building entries when not necessary."""
	return level.value >= LOG_LEVEL.value


def send(entry: LogEntry) -> LogEntry:
	if not logged(entry.level):
		return entry
	clr: str = color(LOG_LEVEL_COLOR[entry.level])
	code: str = f" [{entry.value}]" if entry.value is not None else ""
	out = sys.stderr
	out.write(
		f"{clr}{BOLD}[{entry.origin}]{RESET}{clr}{code} {entry.message} {formatData(entry.context)}{RESET}\n"
	)
	out.flush()
	return entry


def entry(
	*,
	level: LogLevel,
	message: str,
	origin: str | None = None,
	value: TValue = None,
	context: dict[str, TValue],
) -> LogEntry:
	return LogEntry(
		origin=origin or LogOrigin.get(),
		time=time.time(),
		level=level,
		message=message,
		value=value,
		context=context,
	)


def debug(message: str, *, origin: str | None = None, **context: TValue) -> LogEntry:
	return send(
		entry(level=LogLevel.Debug, message=message, origin=origin, context=context)
	)


def info(message: str, *, origin: str | None = None, **context: TValue) -> LogEntry:
	return send(
		entry(level=LogLevel.Info, message=message, origin=origin, context=context)
	)


def warning(
	message: str, *, origin: str | None = None, **context: TValue
) -> LogEntry:
	return send(
		entry(level=LogLevel.Warning, message=message, origin=origin, context=context)
	)


def error(
	message: str,
	code: int | str | None,
	*,
	origin: str | None = None,
	**context: TValue,
) -> LogEntry:
	return send(
		entry(
			level=LogLevel.Error,
			message=message,
			value=code,
			origin=origin,
			context=context,
		)
	)


def exception(exception: BaseException, message: str | None = None) -> BaseException:
	"""Logs the exception with its traceback at error level, and returns it
	so that it can be used as `raise exception(e)`."""
	if not logged(LogLevel.Error):
		return exception
	name: str = exception.__class__.__name__
	out = sys.stderr
	out.write(
		f"{color(LOG_LEVEL_COLOR[LogLevel.Error])}!!! EXCP {f'{message}: ' if message else ''}[{name}] {exception}{RESET}\n"
	)
	tb = exception.__traceback__
	while tb:
		code = tb.tb_frame.f_code
		out.write(f"... in {code.co_name:15s} at {tb.tb_lineno:4d} in {code.co_filename}\n")
		tb = tb.tb_next
	out.flush()
	return exception


# EOF
