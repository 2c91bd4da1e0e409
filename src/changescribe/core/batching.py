from __future__ import annotations

from changescribe.core.settings import DEFAULT_BATCH_SIZE
from changescribe.core.types import Commit


# =============================================================================
# COMMIT BATCHING
# =============================================================================
# Large commit ranges are split into batches so each draft prompt stays small.
# Batches keep the host's order (newest first) and never overlap.
# =============================================================================


def batch_commits(commits: list[Commit], batch_size: int = DEFAULT_BATCH_SIZE) -> list[list[Commit]]:
    """
    Split commits into consecutive batches of at most batch_size.

    The last batch may be smaller. Empty input yields no batches.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    batches: list[list[Commit]] = []
    current_batch: list[Commit] = []

    for commit in commits:
        if len(current_batch) >= batch_size:
            batches.append(current_batch)
            current_batch = []
        current_batch.append(commit)

    # Don't forget the last batch
    if current_batch:
        batches.append(current_batch)

    return batches
