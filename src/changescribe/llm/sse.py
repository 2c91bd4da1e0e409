"""
Server-sent event reassembly for OpenAI-compatible chat streams.

Frames look like `data: {json}` lines with `data: [DONE]` at the end.
The incremental text lives at choices[0].delta.content. Chunks can split
anywhere, including inside a multi-byte character, so bytes are decoded
incrementally and lines are only parsed once complete.
"""
from __future__ import annotations

import codecs
import json
from typing import AsyncIterable, AsyncIterator, Optional

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


class _Done:
    pass


_DONE = _Done()


def extract_content(payload: object) -> Optional[str]:
    """Read choices[0].delta.content, returning None for any other shape."""
    try:
        content = payload["choices"][0]["delta"]["content"]  # type: ignore[index]
    except (KeyError, IndexError, TypeError):
        return None
    return content if isinstance(content, str) else None


def _parse_line(raw_line: str) -> Optional[str] | _Done:
    line = raw_line.strip()
    if not line.startswith(DATA_PREFIX):
        # Comments (": keep-alive"), event names, blank separators
        return None

    data = line[len(DATA_PREFIX):]
    if data == DONE_SENTINEL:
        return _DONE

    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        return None
    return extract_content(payload)


async def reassemble_sse(chunks: AsyncIterable[bytes]) -> AsyncIterator[str]:
    """
    Yield text fragments from an SSE byte stream.

    Stops at the [DONE] sentinel without emitting it. Malformed lines are
    skipped. Closing this generator closes the upstream stream too.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""

    try:
        async for chunk in chunks:
            buffer += decoder.decode(chunk)

            while True:
                line_end = buffer.find("\n")
                if line_end == -1:
                    break
                line = buffer[:line_end]
                buffer = buffer[line_end + 1:]

                content = _parse_line(line)
                if content is _DONE:
                    return
                if content:
                    yield content

        # Upstream ended without a trailing newline
        buffer += decoder.decode(b"", final=True)
        content = _parse_line(buffer)
        if content and content is not _DONE:
            yield content
    finally:
        aclose = getattr(chunks, "aclose", None)
        if aclose is not None:
            await aclose()
