"""
In-band stream markers.

The orchestrator mixes these synthetic fragments into the same text stream
as model output. Consumers that render raw text can find or strip them with
MARKER_RE. The exact text shape is part of the wire contract.
"""
from __future__ import annotations

import json
import re
from typing import Literal, NamedTuple

MarkerKind = Literal["progress", "batch-done", "working", "merging", "error"]

MARKER_RE = re.compile(r"\[\[(progress|batch-done|working|merging|error)(?::([^\]]*))?\]\]")

SSE_DONE = b"data: [DONE]\n\n"


class Marker(NamedTuple):
    kind: MarkerKind
    value: str


def progress_marker(index: int, total: int) -> str:
    return f"[[progress:{index}/{total}]]"


def batch_done_marker(index: int, total: int) -> str:
    return f"[[batch-done:{index}/{total}]]"


def working_marker(index: int, total: int) -> str:
    return f"[[working:{index}/{total}]]"


def merging_marker(draft_count: int) -> str:
    return f"[[merging:{draft_count}]]"


def error_marker(message: str) -> str:
    # "]" would end the marker early
    safe_message = " ".join(message.split()).replace("]", ")")
    return f"[[error:{safe_message}]]"


def find_markers(text: str) -> list[Marker]:
    return [Marker(match.group(1), match.group(2) or "") for match in MARKER_RE.finditer(text)]


def strip_markers(text: str) -> str:
    return MARKER_RE.sub("", text)


def encode_sse_frame(content: str) -> bytes:
    """Frame a text fragment the way the model provider frames a token chunk."""
    payload = {"choices": [{"delta": {"content": content}}]}
    return f"data: {json.dumps(payload)}\n\n".encode("utf-8")
