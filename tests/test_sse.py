"""Unit tests for the stream decoder."""
import json

import pytest
from hypothesis import given
from hypothesis import strategies as st

from conftest import byte_chunks, sse_body, sse_line
from streamchat.llm.errors import MalformedFrame
from streamchat.llm.sse import SSEDecoder, extract_delta, iter_sse_deltas

delta_text = st.text(
    alphabet=st.characters(blacklist_categories=("Cs",)),
    min_size=1,
    max_size=20,
)


def split_at(data: bytes, cuts: list[int]) -> list[bytes]:
    """Split `data` at the given offsets (taken modulo its length)."""
    points = sorted({cut % (len(data) + 1) for cut in cuts})
    starts = [0, *points]
    ends = [*points, len(data)]
    return [data[start:end] for start, end in zip(starts, ends)]


def decode_all(chunks: list[bytes], decoder: SSEDecoder | None = None) -> list[str]:
    decoder = decoder or SSEDecoder()
    deltas = []
    for chunk in chunks:
        deltas.extend(decoder.feed(chunk))
    deltas.extend(decoder.flush())
    return deltas


class TestExtractDelta:
    """Tests for pulling content out of a parsed frame."""

    def test_content(self):
        assert extract_delta({"choices": [{"delta": {"content": "Hi"}}]}) == "Hi"

    def test_no_content_is_none(self):
        assert extract_delta({"choices": [{"delta": {"role": "assistant"}}]}) is None
        assert extract_delta({"choices": [{"delta": {"content": ""}}]}) is None
        assert extract_delta({"choices": [{"delta": {"content": None}}]}) is None
        assert extract_delta({"choices": []}) is None

    def test_missing_choices_is_malformed(self):
        with pytest.raises(MalformedFrame):
            extract_delta({"id": "x"})

    def test_non_object_is_malformed(self):
        with pytest.raises(MalformedFrame):
            extract_delta([1, 2])


class TestSSEDecoder:
    """Tests for the push based decoder."""

    def test_two_deltas_then_done(self):
        decoder = SSEDecoder()
        assert decoder.feed(sse_body("Hi", " there")) == ["Hi", " there"]
        assert decoder.done

    def test_line_split_across_chunks(self):
        line = sse_line("hello").encode()
        decoder = SSEDecoder()
        assert decoder.feed(line[:10]) == []
        assert decoder.feed(line[10:]) == ["hello"]

    def test_multibyte_character_split_mid_codepoint(self):
        body = sse_body("你好")
        cut = body.index("你".encode()) + 1
        assert decode_all([body[:cut], body[cut:]]) == ["你好"]

    def test_non_data_lines_are_ignored(self):
        body = (
            b": keep-alive\n"
            b"event: message\n"
            b"\n"
            b'data:{"choices":[{"delta":{"content":"no space"}}]}\n'
            + sse_line("ok").encode()
        )
        assert decode_all([body]) == ["ok"]

    def test_crlf_line_endings(self):
        body = sse_body("a", "b").replace(b"\n", b"\r\n")
        assert decode_all([body]) == ["a", "b"]

    def test_invalid_json_is_reported_and_skipped(self):
        reported: list[MalformedFrame] = []
        decoder = SSEDecoder(on_malformed=reported.append)

        body = b"data: {not json\n" + sse_body("after")
        assert decode_all([body], decoder) == ["after"]
        assert len(reported) == 1
        assert reported[0].line == "data: {not json"
        assert "invalid JSON" in reported[0].reason

    def test_frame_without_choices_is_reported(self):
        reported: list[MalformedFrame] = []
        decoder = SSEDecoder(on_malformed=reported.append)

        assert decoder.feed(b'data: {"error": "x"}\n') == []
        assert [error.reason for error in reported] == ["missing choices"]

    def test_empty_content_is_skipped_silently(self):
        reported: list[MalformedFrame] = []
        decoder = SSEDecoder(on_malformed=reported.append)

        body = b'data: {"choices":[{"delta":{"role":"assistant"}}]}\n' + sse_body("x")
        assert decode_all([body], decoder) == ["x"]
        assert reported == []

    def test_bytes_after_done_are_ignored(self):
        decoder = SSEDecoder()
        chunk = sse_body("kept") + sse_line("dropped").encode()
        assert decoder.feed(chunk) == ["kept"]
        assert decoder.feed(sse_line("late").encode()) == []
        assert decoder.flush() == []

    def test_flush_processes_unterminated_line(self):
        decoder = SSEDecoder()
        assert decoder.feed(sse_line("tail").encode().rstrip(b"\n")) == []
        assert decoder.flush() == ["tail"]

    def test_stream_ending_without_done(self):
        assert decode_all([sse_body("a", "b", done=False)]) == ["a", "b"]

    def test_surrogate_pair_split_across_frames(self):
        decoder = SSEDecoder()
        assert decoder.feed(b'data: {"choices":[{"delta":{"content":"a\\ud83d"}}]}\n') == ["a"]
        assert decoder.feed(b'data: {"choices":[{"delta":{"content":"\\ude00b"}}]}\n') == ["\U0001F600b"]
        assert decoder.feed(b"data: [DONE]\n") == []

    def test_escaped_pair_within_one_frame(self):
        body = b'data: {"choices":[{"delta":{"content":"\\ud83d\\ude00"}}]}\n'
        assert decode_all([body]) == ["\U0001F600"]

    @pytest.mark.parametrize(
        ("body", "expected"),
        [
            (b'data: {"choices":[{"delta":{"content":"\\ude00x"}}]}\n', ["\ufffdx"]),
            (b'data: {"choices":[{"delta":{"content":"x\\ud83dy"}}]}\n', ["x\ufffdy"]),
        ],
    )
    def test_lone_surrogate_is_replaced(self, body, expected):
        assert decode_all([body]) == expected

    @pytest.mark.parametrize("done", [True, False])
    def test_unpaired_high_surrogate_at_end_is_replaced(self, done):
        body = b'data: {"choices":[{"delta":{"content":"\\ud83d"}}]}\n'
        if done:
            body += b"data: [DONE]\n"
        assert decode_all([body]) == ["\ufffd"]

    @given(
        pieces=st.lists(
            st.lists(
                st.one_of(st.integers(0xD800, 0xDFFF).map(chr), st.sampled_from("ab\u00e9")),
                min_size=1,
                max_size=6,
            ).map("".join),
            min_size=1,
            max_size=6,
        )
    )
    def test_deltas_always_encode_as_utf8(self, pieces):
        """Property: escaped surrogates in any frame never yield unencodable text."""
        body = "".join(
            "data: " + json.dumps({"choices": [{"delta": {"content": piece}}]}) + "\n"
            for piece in pieces
        )
        for delta in decode_all([body.encode("ascii")]):
            delta.encode("utf-8")

    @given(
        deltas=st.lists(delta_text, min_size=1, max_size=8),
        cuts=st.lists(st.integers(min_value=0, max_value=10_000), max_size=12),
    )
    def test_chunk_split_invariance(self, deltas, cuts):
        """Property: the deltas never depend on how the body is chunked."""
        body = sse_body(*deltas)
        assert decode_all(split_at(body, cuts)) == deltas

    @given(lines=st.lists(st.text(max_size=40).filter(lambda s: "\n" not in s), max_size=10))
    def test_non_data_lines_never_yield(self, lines):
        """Property: lines without the `data: ` prefix produce nothing."""
        lines = [line for line in lines if not line.startswith("data: ")]
        body = "\n".join(lines).encode("utf-8", errors="surrogatepass")
        assert decode_all([body]) == []

    @given(payload=st.text(max_size=200).filter(lambda s: "\n" not in s))
    def test_arbitrary_payload_never_raises(self, payload):
        """Property: any payload after `data: ` is decoded or skipped, never raised."""
        body = f"data: {payload}\n".encode("utf-8", errors="surrogatepass")
        deltas = decode_all([body])
        assert all(isinstance(delta, str) and delta for delta in deltas)


class TestIterSSEDeltas:
    """Tests for the lazy async wrapper."""

    @pytest.mark.asyncio
    async def test_yields_deltas_in_order(self):
        body = sse_body("Hi", " there")
        deltas = [delta async for delta in iter_sse_deltas(byte_chunks(*split_at(body, [7, 30])))]
        assert "".join(deltas) == "Hi there"

    @pytest.mark.asyncio
    async def test_stops_reading_after_done(self):
        pulled = []

        async def chunks():
            pulled.append(1)
            yield sse_body("only")
            pulled.append(2)
            yield sse_line("never").encode()

        deltas = [delta async for delta in iter_sse_deltas(chunks())]
        assert deltas == ["only"]
        assert pulled == [1]

    @pytest.mark.asyncio
    async def test_reader_errors_propagate(self):
        async def chunks():
            yield sse_line("partial").encode()
            raise ConnectionResetError("reset")

        received = []
        with pytest.raises(ConnectionResetError):
            async for delta in iter_sse_deltas(chunks()):
                received.append(delta)
        assert received == ["partial"]

    @pytest.mark.asyncio
    async def test_malformed_callback_is_forwarded(self):
        reported: list[MalformedFrame] = []
        body = b"data: nope\n" + sse_body("ok")
        deltas = [
            delta async for delta in iter_sse_deltas(byte_chunks(body), on_malformed=reported.append)
        ]
        assert deltas == ["ok"]
        assert len(reported) == 1
