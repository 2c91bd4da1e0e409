from __future__ import annotations

import traceback
from contextlib import aclosing
from typing import AsyncIterator, Literal, Optional

from changescribe.core.batching import batch_commits
from changescribe.core.content_filter import filter_commits
from changescribe.core.errors import ChangescribeError
from changescribe.core.ports import ChatStreamer
from changescribe.core.settings import PipelineSettings
from changescribe.core.types import ClarifyingAnswers, Commit
from changescribe.llm.markers import (
    SSE_DONE,
    batch_done_marker,
    encode_sse_frame,
    error_marker,
    merging_marker,
    progress_marker,
    working_marker,
)
from changescribe.llm.sse import reassemble_sse
from changescribe.prompts.builder import build_batch_prompt, build_merge_prompt

# Phase the generation is in; a failure is logged with the phase it happened in
GenerationState = Literal["idle", "single_batch", "batch_loop", "merging", "done"]

GENERIC_FAILURE_MESSAGE = "Changelog generation failed"


async def _draft_batch(
    llm: ChatStreamer,
    prompt: str,
    batch_index: int,
    batch_total: int,
    settings: PipelineSettings,
) -> AsyncIterator[bytes | str]:
    """
    Stream one batch's model call.

    Yields keep-alive frames (bytes) while tokens arrive, then the assembled
    draft (str) as the last item.
    """
    draft_parts: list[str] = []

    async with aclosing(reassemble_sse(llm.stream_chat(prompt))) as tokens:
        async for token in tokens:
            draft_parts.append(token)
            if len(draft_parts) % settings.working_marker_every == 0:
                yield encode_sse_frame(working_marker(batch_index, batch_total))

    yield "".join(draft_parts)


async def generate_changelog(
    commits: list[Commit],
    llm: ChatStreamer,
    context: Optional[str] = None,
    answers: Optional[ClarifyingAnswers] = None,
    settings: Optional[PipelineSettings] = None,
) -> AsyncIterator[bytes]:
    """
    Generate a changelog as one SSE byte stream.

    One batch: the model's stream is relayed untouched.
    Several batches: each batch is drafted sequentially with progress and
    done markers around it, then a merge call over all drafts is relayed.

    Any failure closes off the current line and emits an in-band error
    marker followed by the [DONE] sentinel, so the consumer always sees a
    cleanly terminated stream.
    Empty input makes no model call and yields nothing; callers reject
    empty commit windows before getting here.
    """
    settings = settings or PipelineSettings()
    state: GenerationState = "idle"

    batches = batch_commits(filter_commits(commits, settings.excluded_patterns), settings.batch_size)
    if not batches:
        print("[Changescribe] ⚠️ No commits to generate from, skipping model call")
        return

    batch_total = len(batches)

    try:
        # ======================================================================
        # SINGLE BATCH - direct passthrough
        # ======================================================================
        if batch_total == 1:
            state = "single_batch"
            prompt = build_batch_prompt(batches[0], context, answers, settings=settings)
            async with aclosing(llm.stream_chat(prompt)) as stream:
                async for chunk in stream:
                    yield chunk
            state = "done"
            return

        # ======================================================================
        # BATCH LOOP - strictly one batch at a time
        # ======================================================================
        state = "batch_loop"
        print(f"[Changescribe] 📦 Drafting {len(commits)} commits in {batch_total} batches...")
        drafts: list[str] = []

        for batch_index, batch in enumerate(batches, 1):
            yield encode_sse_frame(progress_marker(batch_index, batch_total))
            print(f"[Changescribe] 📦 batch {batch_index}/{batch_total} ({len(batch)} commits)")

            prompt = build_batch_prompt(batch, context, answers, batch_index, batch_total, settings)
            async with aclosing(_draft_batch(llm, prompt, batch_index, batch_total, settings)) as draft_stream:
                async for item in draft_stream:
                    if isinstance(item, bytes):
                        yield item
                    else:
                        drafts.append(item)

            if not drafts[-1].strip():
                print(f"[Changescribe] ⚠️ batch {batch_index}/{batch_total} produced an empty draft")

            yield encode_sse_frame(batch_done_marker(batch_index, batch_total))

        # ======================================================================
        # MERGE - relay the consolidation call as-is
        # ======================================================================
        state = "merging"
        yield encode_sse_frame(merging_marker(batch_total))

        if not any(draft.strip() for draft in drafts):
            print("[Changescribe] ⚠️ All drafts are empty, merging anyway")

        merge_prompt = build_merge_prompt(drafts, context, answers)
        async with aclosing(llm.stream_chat(merge_prompt)) as stream:
            async for chunk in stream:
                yield chunk
        state = "done"

    except Exception as error:
        print(f"[Changescribe] ❌ Generation failed during {state}: {error}")
        if not isinstance(error, ChangescribeError):
            traceback.print_exc()
        message = error.message if isinstance(error, ChangescribeError) else GENERIC_FAILURE_MESSAGE
        # A relayed stream can break off mid-line; terminate that line first
        yield b"\n\n"
        yield encode_sse_frame(error_marker(message))
        yield SSE_DONE
