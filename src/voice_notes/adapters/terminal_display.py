import sys
from typing import TextIO

LINE_WIDTH = 80
RULE = "=" * 50


class TerminalDisplay:
    def __init__(self, stream: TextIO | None = None, line_width: int = LINE_WIDTH) -> None:
        self._stream = stream or sys.stdout
        self._line_width = line_width
        self._interim_visible = False

    def _clear_line(self) -> None:
        if self._interim_visible:
            self._stream.write("\r" + " " * self._line_width + "\r")
            self._interim_visible = False

    def show_interim(self, text: str) -> None:
        self._clear_line()
        self._stream.write(f"\r... {text}")
        self._stream.flush()
        self._interim_visible = True

    def show_final(self, text: str) -> None:
        self._clear_line()
        self._stream.write(f"{text}\n")
        self._stream.flush()

    def show_notes(self, notes: str) -> None:
        self._clear_line()
        self._stream.write(f"\nGenerated notes:\n{RULE}\n{notes}\n{RULE}\n")
        self._stream.flush()
