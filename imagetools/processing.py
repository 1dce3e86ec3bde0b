"""
Per-frame scheduling.

Frame-wise operations (filters, geometry, colour remaps) have no
inter-frame dependency, so each frame is submitted to a thread pool and the
results are put back in input order.  Pillow and numpy release the GIL for
the heavy lifting, which makes threads sufficient here.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Sequence, TypeVar

from PIL import Image

from .types import ImageModel

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_WORKERS = 4


def resolve_workers(workers: int | None) -> int:
    """0 or None means one worker per CPU."""
    if not workers:
        return os.cpu_count() or DEFAULT_WORKERS
    return max(1, workers)


def ordered_map(fn: Callable[[T], R], items: Sequence[T],
                workers: int | None = DEFAULT_WORKERS) -> List[R]:
    """Run *fn* over *items* concurrently; results keep input order."""
    workers = resolve_workers(workers)
    if workers == 1 or len(items) <= 1:
        return [fn(item) for item in items]
    results_indexed = []
    with ThreadPoolExecutor(max_workers=min(workers, len(items))) as pool:
        futures = {pool.submit(fn, item): idx for idx, item in enumerate(items)}
        for future in as_completed(futures):
            results_indexed.append((futures[future], future.result()))
    results_indexed.sort(key=lambda x: x[0])
    return [r for _, r in results_indexed]


def map_frames(model: ImageModel, fn: Callable[[Image.Image], Image.Image],
               workers: int | None = DEFAULT_WORKERS) -> ImageModel:
    """Apply *fn* to every frame image, keeping durations and loop count."""
    logger.debug("Processing %d frame(s) with %s", len(model), getattr(fn, "__name__", fn))
    images = ordered_map(fn, [f.image for f in model.frames], workers)
    frames = [f.with_image(img) for f, img in zip(model.frames, images)]
    return ImageModel(frames, model.loop)
