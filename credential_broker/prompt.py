"""Interactive MFA code prompt."""

import getpass
from typing import Optional, TextIO

from .errors import InputError


def read_secret(prompt_text: str, stream: Optional[TextIO] = None) -> str:
    """Read one line from the operator with echo disabled.

    The prompt is written without a trailing newline and flushed before
    reading. Trailing whitespace is stripped from the answer.

    Args:
        prompt_text: Text shown to the operator
        stream: Stream for the prompt (defaults to the controlling terminal)

    Returns:
        The entered value

    Raises:
        InputError: If input is closed, unreadable, or empty
    """
    try:
        value = getpass.getpass(prompt_text, stream=stream)
    except EOFError as e:
        raise InputError(
            "Input closed before an MFA code was entered",
            suggestion="Run from an interactive terminal, or unset MFA_SERIAL",
        ) from e
    except OSError as e:
        raise InputError("Could not read MFA code from the terminal", details=str(e)) from e

    value = value.rstrip()
    if not value:
        raise InputError("No MFA code entered", suggestion="Enter the current code from your MFA device")
    return value
