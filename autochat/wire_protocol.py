"""Decoder for the automation agent's line-oriented stream format.

The agent streams newline-delimited records:

- ``0:"<text>"`` carries a chunk of generated text.
- ``e:{...}`` carries a step/finish event; a non-empty ``finishReason``
  ends the stream.

Every other line is ignored. A single bad line never fails the stream.
"""

import codecs
import json
import logging
from dataclasses import dataclass
from typing import AsyncIterable, Iterator, Optional, Union

logger = logging.getLogger(__name__)

CONTENT_PREFIX = "0:"
FINISH_PREFIX = "e:"


@dataclass(frozen=True)
class ContentRecord:
    """Text chunk from a ``0:`` line."""

    text: str


@dataclass(frozen=True)
class FinishRecord:
    """End of stream from an ``e:`` line with a finish reason."""

    reason: str


@dataclass(frozen=True)
class UnrecognizedRecord:
    """Any line that is neither valid content nor a finish event."""

    line: str


WireRecord = Union[ContentRecord, FinishRecord, UnrecognizedRecord]


def parse_line(line: str) -> WireRecord:
    """
    Classify one wire line.

    Content payloads are taken verbatim from the first double quote after
    the prefix up to the last double quote on the line. Escape sequences
    inside the payload are not interpreted.

    Args:
        line: A single line without its terminator

    Returns:
        The decoded record; UnrecognizedRecord for anything malformed
    """
    if line.startswith(CONTENT_PREFIX):
        start = line.find('"', len(CONTENT_PREFIX))
        end = line.rfind('"')
        if start == -1 or end <= start:
            return UnrecognizedRecord(line=line)
        return ContentRecord(text=line[start + 1 : end])

    if line.startswith(FINISH_PREFIX):
        try:
            payload = json.loads(line[len(FINISH_PREFIX) :])
        except ValueError:
            return UnrecognizedRecord(line=line)
        if isinstance(payload, dict) and payload.get("finishReason"):
            return FinishRecord(reason=str(payload["finishReason"]))
        return UnrecognizedRecord(line=line)

    return UnrecognizedRecord(line=line)


class WireLineScanner:
    """Incremental line splitter over a byte stream.

    Bytes are decoded as UTF-8 across chunk boundaries and complete lines
    are yielded as records. A trailing unterminated line is only parsed by
    ``close()``.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> Iterator[WireRecord]:
        """Consume a chunk and yield records for every completed line."""
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        for line in lines:
            yield parse_line(line.rstrip("\r"))

    def close(self) -> Iterator[WireRecord]:
        """Flush the decoder and parse any unterminated final line."""
        self._buffer += self._decoder.decode(b"", final=True)
        remainder, self._buffer = self._buffer.rstrip("\r"), ""
        if remainder:
            yield parse_line(remainder)


@dataclass
class DecodedAgentOutput:
    """Accumulated result of one agent stream.

    Attributes:
        text: Concatenated content payloads.
        finished: Whether a finish record was seen.
        finish_reason: The finish reason, when one was seen.
        skipped_lines: Count of non-empty lines that were ignored.
    """

    text: str = ""
    finished: bool = False
    finish_reason: Optional[str] = None
    skipped_lines: int = 0


async def decode_agent_stream(chunks: AsyncIterable[bytes]) -> DecodedAgentOutput:
    """
    Decode an agent byte stream into text and a completion flag.

    Consumption stops at the first finish record; anything after it is
    never read. A connection that ends without a finish record is treated
    as a normal end of stream.

    Args:
        chunks: Raw response body chunks

    Returns:
        DecodedAgentOutput with the accumulated text
    """
    scanner = WireLineScanner()
    output = DecodedAgentOutput()
    parts: list[str] = []

    def _absorb(record: WireRecord) -> bool:
        if isinstance(record, ContentRecord):
            parts.append(record.text)
        elif isinstance(record, FinishRecord):
            output.finished = True
            output.finish_reason = record.reason
            return True
        elif record.line.strip():
            output.skipped_lines += 1
        return False

    done = False
    async for chunk in chunks:
        for record in scanner.feed(chunk):
            if _absorb(record):
                done = True
                break
        if done:
            break

    if not done:
        for record in scanner.close():
            _absorb(record)

    output.text = "".join(parts)
    logger.debug(
        "agent_stream_decoded: chars=%d, finished=%s, skipped_lines=%d",
        len(output.text),
        output.finished,
        output.skipped_lines,
    )
    return output
