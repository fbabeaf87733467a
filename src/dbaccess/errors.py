"""
Shared error stack. Library calls return False on failure and record what went wrong here;
the caller decides where the collected messages go (log, page footer, nowhere).
"""
import logging

logger = logging.getLogger(__name__)


class ErrorStack:
    """Append-only list of formatted error messages, oldest first."""

    def __init__(self):
        self._errors = []

    def push(self, prefix, message):
        entry = f"({prefix}) {message}"
        self._errors.append(entry)
        logger.warning("%s", entry)
        return entry

    def as_list(self):
        return list(self._errors)

    def last(self):
        return self._errors[-1] if self._errors else None

    def clear(self):
        self._errors.clear()

    def __len__(self):
        return len(self._errors)

    def __bool__(self):
        return bool(self._errors)


def format_driver_error(exc):
    """Render a PyMySQL exception as '[Error code:] N [Error message:] text'.

    PyMySQL fills args as (code, message); parameter binding errors only carry a message.
    """
    args = getattr(exc, "args", ())
    if len(args) >= 2 and isinstance(args[0], int):
        code, message = args[0], args[1]
    else:
        code, message = 0, str(exc)
    return f"[Error code:] {code} [Error message:] {message}"
