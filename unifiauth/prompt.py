"""Password prompt that draws a placeholder glyph for every typed character."""

import contextlib
import os
import sys
import typing

DEFAULT_PROMPT = "Enter UniFi admin password: "

INTERRUPT = "\x03"
END_OF_INPUT = "\x04"
BACKSPACE = ("\x7f", "\b")
TERMINATORS = ("\r", "\n")


def asterisk(ch: str) -> str:
    """Mask every character with a single '*'."""
    return "*"


@contextlib.contextmanager
def masked_terminal(stream):
    """Switch the terminal behind ``stream`` to raw mode for the duration.

    Echo and line buffering are off inside the block, so the caller decides
    what gets drawn. The previous mode is restored however the block exits.
    """
    import termios
    import tty

    fd = stream.fileno()
    saved = termios.tcgetattr(fd)
    try:
        tty.setraw(fd)
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)


def read_masked(
    read_char: typing.Callable[[], str],
    write: typing.Callable[[str], typing.Any],
    mask: typing.Callable[[str], str] = asterisk,
) -> str:
    """Collect characters up to a line terminator, writing ``mask(ch)`` for each.

    End of input returns whatever was captured so far. Ctrl-C raises
    KeyboardInterrupt.
    """
    chars: list[str] = []
    glyphs: list[str] = []
    while True:
        ch = read_char()
        if ch in ("", END_OF_INPUT) or ch in TERMINATORS:
            break
        if ch == INTERRUPT:
            raise KeyboardInterrupt
        if ch in BACKSPACE:
            if chars:
                chars.pop()
                n = len(glyphs.pop())
                write("\b" * n + " " * n + "\b" * n)
            continue
        chars.append(ch)
        glyphs.append(mask(ch))
        write(glyphs[-1])
    return "".join(chars)


def prompt_password(
    prompt: str = DEFAULT_PROMPT,
    mask: typing.Callable[[str], str] = asterisk,
    stdin=None,
    stdout=None,
) -> str:
    """Prompt for a password and return it without the line terminator.

    On a POSIX terminal each keystroke is drawn as ``mask(ch)``. Anything
    else (a pipe, a file) is read as a single unmasked line.
    """
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout

    def write(s: str) -> None:
        stdout.write(s)
        stdout.flush()

    write(prompt)
    if os.name == "posix" and stdin.isatty():
        with masked_terminal(stdin):
            password = read_masked(lambda: stdin.read(1), write, mask)
    else:
        password = stdin.readline().rstrip("\r\n")
    write("\n")
    return password
