"""Splitting text into literal text, literal XML and command segments."""

from dataclasses import dataclass
from enum import Enum, auto
from typing import List

from docx_report_engine.shared import CommandSyntaxError, DelimiterConfig


class SegmentKind(Enum):
    """Kinds of text segments produced by the delimiter scan."""

    TEXT = auto()         # Plain document text
    LITERAL_XML = auto()  # Text wrapped in the literal-XML delimiter
    COMMAND = auto()      # Text wrapped in the command delimiters


@dataclass
class Segment:
    """A span of text with its offsets in the scanned string.

    ``text`` always holds the full span, delimiters included; ``inner`` holds
    the content between the delimiters for command and literal segments.
    """

    kind: SegmentKind
    text: str
    start: int
    end: int
    inner: str = ""


def split_segments(text: str, delimiters: DelimiterConfig) -> List[Segment]:
    """Scan text left to right for command and literal-XML spans.

    Args:
        text: Text to scan
        delimiters: Command and literal-XML delimiters

    Returns:
        Segments covering the whole text, in order

    Raises:
        CommandSyntaxError: If a command delimiter is opened but never closed
    """
    segments: List[Segment] = []
    start_delim, end_delim, literal = delimiters.start, delimiters.end, delimiters.literal_xml
    pos = 0

    def emit_text(upto: int) -> None:
        if upto > pos:
            segments.append(Segment(SegmentKind.TEXT, text[pos:upto], pos, upto))

    while pos < len(text):
        next_cmd = text.find(start_delim, pos)
        next_lit = text.find(literal, pos)

        if next_lit != -1 and (next_cmd == -1 or next_lit < next_cmd):
            close = text.find(literal, next_lit + len(literal))
            if close != -1:
                emit_text(next_lit)
                stop = close + len(literal)
                segments.append(Segment(
                    SegmentKind.LITERAL_XML,
                    text[next_lit:stop],
                    next_lit,
                    stop,
                    inner=text[next_lit + len(literal):close],
                ))
                pos = stop
                continue
            # An unpaired literal delimiter is plain text
            if next_cmd == -1:
                break

        if next_cmd == -1:
            break

        close = text.find(end_delim, next_cmd + len(start_delim))
        if close == -1:
            raise CommandSyntaxError(text[next_cmd:].strip(), "Unterminated command")

        emit_text(next_cmd)
        stop = close + len(end_delim)
        segments.append(Segment(
            SegmentKind.COMMAND,
            text[next_cmd:stop],
            next_cmd,
            stop,
            inner=text[next_cmd + len(start_delim):close],
        ))
        pos = stop

    emit_text(len(text))
    return segments
