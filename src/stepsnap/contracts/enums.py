"""Levels used across subsystem boundaries."""

from enum import IntEnum


class DebugLevel(IntEnum):
    """Verbosity gate for the context logger.

    Ordered: NONE < DEBUG < VERBOSE. Uses IntEnum so levels compare
    with ``>=`` and accept the plain integers 0/1/2 from config files.
    """

    NONE = 0
    DEBUG = 1
    VERBOSE = 2

    @classmethod
    def parse(cls, value: "DebugLevel | int | str") -> "DebugLevel":
        """Coerce an enum, integer or case-insensitive name to a level.

        Raises:
            ValueError: If the value names no level
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"Invalid debug level: {value!r}")
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, str):
            name = value.strip().upper()
            if name.isdigit():
                return cls(int(name))
            try:
                return cls[name]
            except KeyError:
                raise ValueError(f"Invalid debug level: {value!r}") from None
        raise ValueError(f"Invalid debug level: {value!r}")

