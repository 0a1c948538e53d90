"""Line framing: byte chunks in, complete text lines out."""

from __future__ import annotations

from typing import List


TERMINATOR = b"\n"


class LineBuffer:
    """ Accumulate raw bytes as they arrive from the socket and hand back
        complete lines. TCP segments can split a line anywhere, or carry
        several lines at once; a line is only returned once its terminator
        has arrived, and never merged with its neighbour.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding
        self._buffer = bytearray()

    def __len__(self) -> int:
        return len(self._buffer)

    def feed(self, data: bytes) -> List[str]:
        """ Append *data* and return every line it completed, in arrival
            order. The terminating ``\\n``, and a ``\\r`` before it, are
            stripped.
        """

        self._buffer.extend(data)

        lines = list()
        while True:
            index = self._buffer.find(TERMINATOR)
            if index < 0:
                break

            raw = bytes(self._buffer[:index])
            del self._buffer[:index + 1]

            if raw.endswith(b"\r"):
                raw = raw[:-1]

            lines.append(raw.decode(self.encoding, errors="replace"))

        return lines

    def reset(self) -> bytes:
        """Discard any partial line, returning what was discarded."""

        partial = bytes(self._buffer)
        self._buffer.clear()
        return partial


def encode_line(text: str, encoding: str = "utf-8") -> bytes:
    """ Encode *text* as one wire line. The text must not contain a line
        break of its own.
    """

    if "\n" in text or "\r" in text:
        raise ValueError("a line cannot contain line breaks: " + repr(text))

    return text.encode(encoding) + TERMINATOR


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
