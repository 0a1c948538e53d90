"""Error types for the Pon codec."""

from __future__ import annotations


class MalformedInput(ValueError):
    """ Raised when text does not match the Pon grammar. The location of
        the problem is retained so that the offending payload can be
        reported precisely.

        :ivar reason: Human-readable description of the problem.
        :ivar line: 1-based line number of the problem.
        :ivar col: 1-based column number of the problem.
        :ivar offset: 0-based character offset into the parsed text.
    """

    def __init__(self, reason: str, line: int = 1, col: int = 1, offset: int = 0) -> None:
        super().__init__(f"malformed Pon at {line}:{col}: {reason}")
        self.reason = reason
        self.line = line
        self.col = col
        self.offset = offset


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
