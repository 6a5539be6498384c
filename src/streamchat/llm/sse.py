"""Incremental decoder for `data: {json}` completion streams.

Hides how raw body chunks become text deltas:
- UTF-8 decoding state carried across chunk boundaries
- Line reassembly from arbitrarily split reads
- The `[DONE]` sentinel and per-line JSON extraction
- Tolerance of heartbeat and malformed lines
- Surrogate pairs escaped across two frames (`\\ud83d` then `\\ude00`)

SSEDecoder is push based and synchronous so it can be fed from anywhere;
iter_sse_deltas wraps it as the lazy, pull based sequence the providers use.
"""

import codecs
import json
from collections.abc import AsyncIterable, AsyncIterator, Callable
from typing import Any

from .errors import MalformedFrame

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
REPLACEMENT_CHARACTER = "\ufffd"

MalformedCallback = Callable[[MalformedFrame], None]


def extract_delta(frame: Any) -> str | None:
    """Pull `choices[0].delta.content` out of a parsed frame.

    Returns:
        The content string, or None if the frame carries no text

    Raises:
        MalformedFrame: If the frame does not have the choices structure
    """
    if not isinstance(frame, dict):
        raise MalformedFrame(json.dumps(frame)[:80], "frame is not an object")

    choices = frame.get("choices")
    if not isinstance(choices, list):
        raise MalformedFrame(json.dumps(frame)[:80], "missing choices")
    if not choices:
        return None

    first = choices[0]
    delta = first.get("delta") if isinstance(first, dict) else None
    if not isinstance(delta, dict):
        return None

    content = delta.get("content")
    if isinstance(content, str) and content:
        return content
    return None


def repair_surrogates(text: str) -> str:
    """Combine surrogate pairs into one code point; lone halves become U+FFFD."""
    return text.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "replace")


def _is_high_surrogate(char: str) -> bool:
    return "\ud800" <= char <= "\udbff"


class SSEDecoder:
    """Turns body chunks into text deltas.

    Feed bytes with feed(); call flush() once the body has ended. After the
    `[DONE]` sentinel is seen the decoder is finished and ignores any further
    input, including bytes that followed the sentinel in the same chunk.

    Usage:
        decoder = SSEDecoder()
        for chunk in chunks:
            for delta in decoder.feed(chunk):
                print(delta, end="")
            if decoder.done:
                break
        else:
            for delta in decoder.flush():
                print(delta, end="")
    """

    def __init__(self, on_malformed: MalformedCallback | None = None) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        # High surrogate ending the previous delta, waiting for its pair
        self._pending = ""
        self._done = False
        self._on_malformed = on_malformed

    @property
    def done(self) -> bool:
        """True once the `[DONE]` sentinel has been seen."""
        return self._done

    def feed(self, chunk: bytes) -> list[str]:
        """Decode one chunk and return the deltas of every completed line."""
        if self._done:
            return []

        text = self._buffer + self._decoder.decode(chunk)
        *lines, self._buffer = text.split("\n")
        return self._process(lines)

    def flush(self) -> list[str]:
        """End of body: decode what is left and process the final fragment."""
        if self._done:
            return []

        text = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        lines = text.split("\n")
        deltas = self._process([line for line in lines if line])
        if not self._done:
            deltas.extend(self._drain_pending())
        return deltas

    def _process(self, lines: list[str]) -> list[str]:
        deltas = []
        for line in lines:
            if line.endswith("\r"):
                line = line[:-1]
            if not line.startswith(DATA_PREFIX):
                continue

            payload = line[len(DATA_PREFIX):]
            if payload == DONE_SENTINEL:
                self._done = True
                self._buffer = ""
                deltas.extend(self._drain_pending())
                break

            delta = self._join_surrogates(self._parse_payload(line, payload))
            if delta:
                deltas.append(delta)
        return deltas

    def _join_surrogates(self, delta: str | None) -> str:
        """Make a delta well-formed text, holding back a trailing high surrogate."""
        if not delta:
            return ""
        text = self._pending + delta
        self._pending = ""
        if _is_high_surrogate(text[-1]):
            text, self._pending = text[:-1], text[-1]
        return repair_surrogates(text)

    def _drain_pending(self) -> list[str]:
        if not self._pending:
            return []
        self._pending = ""
        return [REPLACEMENT_CHARACTER]

    def _parse_payload(self, line: str, payload: str) -> str | None:
        try:
            return extract_delta(json.loads(payload))
        except json.JSONDecodeError as e:
            self._report(MalformedFrame(line, f"invalid JSON: {e.msg}"))
        except MalformedFrame as frame_error:
            self._report(MalformedFrame(line, frame_error.reason))
        return None

    def _report(self, error: MalformedFrame) -> None:
        if self._on_malformed is not None:
            self._on_malformed(error)


async def iter_sse_deltas(
    chunks: AsyncIterable[bytes],
    on_malformed: MalformedCallback | None = None,
) -> AsyncIterator[str]:
    """Lazily yield text deltas from an async stream of body chunks.

    The sequence is finite and not restartable. It ends when the chunks run
    out or when `[DONE]` is seen, whichever comes first. Errors raised by the
    underlying reader propagate unchanged.

    Args:
        chunks: Async iterable of raw body bytes (e.g. httpx aiter_bytes())
        on_malformed: Called for every line skipped as malformed

    Yields:
        Non-empty text deltas in arrival order
    """
    decoder = SSEDecoder(on_malformed=on_malformed)

    async for chunk in chunks:
        for delta in decoder.feed(chunk):
            yield delta
        if decoder.done:
            return

    for delta in decoder.flush():
        yield delta
