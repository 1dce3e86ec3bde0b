"""
Host-side packaging of output images.

A command may produce many images (``gif-split``, ``nine-grid``...).  The
host decides how to hand them over: all at once, in fixed-size batches,
as one forwarded bundle, or packed into an archive by the external ``7z``
tool.  This module only plans and packs; sending belongs to the host.
"""

from __future__ import annotations

import enum
import logging
import shutil
import subprocess
import tempfile
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence, TypeVar

from .exceptions import ZipFailed
from .types import EncodedImage

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SendType(enum.Enum):
    """What to do once outputs exceed the overflow threshold."""
    MULTI = "multi"         # several messages of at most `threshold` images
    FORWARD = "forward"     # one forwarded bundle
    FILE = "file"           # one archive


class ZipType(enum.Enum):
    ZIP = "zip"
    SEVEN_ZIP = "7z"


ZIP_MIME_TYPES = {
    ZipType.ZIP: "application/zip",
    ZipType.SEVEN_ZIP: "application/x-7z-compressed",
}


@dataclass(frozen=True)
class DeliveryConfig:
    send_one_by_one: bool = False
    overflow_threshold: int = 9
    overflow_send_type: SendType = SendType.FORWARD
    one_by_one_in_forward: bool = False
    zip_file_type: ZipType = ZipType.SEVEN_ZIP


@dataclass
class DeliveryPlan:
    """How outputs are grouped: each batch is one message."""
    send_type: SendType | None
    batches: List[List[EncodedImage]] = field(default_factory=list)

    @property
    def needs_archive(self) -> bool:
        return self.send_type is SendType.FILE


def chunks(items: Sequence[T], n: int) -> List[List[T]]:
    """Split *items* into consecutive slices of at most *n* elements."""
    if n <= 0:
        raise ValueError("Chunk size must be positive.")
    return [list(items[i:i + n]) for i in range(0, len(items), n)]


def plan_delivery(blobs: Sequence[EncodedImage],
                  config: DeliveryConfig = DeliveryConfig()) -> DeliveryPlan:
    threshold = config.overflow_threshold
    if len(blobs) <= threshold:
        if config.send_one_by_one:
            return DeliveryPlan(None, [[b] for b in blobs])
        return DeliveryPlan(None, [list(blobs)])

    send_type = config.overflow_send_type
    if send_type is SendType.FILE:
        return DeliveryPlan(send_type, [list(blobs)])
    if send_type is SendType.FORWARD and config.one_by_one_in_forward:
        return DeliveryPlan(send_type, [[b] for b in blobs])
    return DeliveryPlan(send_type, chunks(blobs, threshold))


def write_outputs(blobs: Sequence[EncodedImage], directory: Path,
                  stem: str = "output") -> List[Path]:
    """Write each blob to *directory* as ``<stem>-<index>.<ext>``."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    width = len(str(max(len(blobs) - 1, 0)))
    paths = []
    for i, blob in enumerate(blobs):
        name = f"{stem}.{blob.extension}" if len(blobs) == 1 else \
            f"{stem}-{i:0{width}d}.{blob.extension}"
        path = directory / name
        path.write_bytes(blob.data)
        paths.append(path)
    return paths


def zip_outputs(blobs: Sequence[EncodedImage], dest_dir: Path,
                archiver: Path | str = "7z",
                file_type: ZipType = ZipType.SEVEN_ZIP,
                timeout: int = 120) -> Path:
    """Pack *blobs* into ``image-tools-<id>.<ext>`` using the external 7z tool.

    Raises
    ------
    ZipFailed
        If the archiver is missing or exits with an error.
    """
    dest_dir = Path(dest_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)
    archive = dest_dir / f"image-tools-{uuid.uuid4().hex[:8]}.{file_type.value}"
    tmpdir = tempfile.mkdtemp(prefix="imagetools_zip_")
    try:
        for i, blob in enumerate(blobs):
            (Path(tmpdir) / f"{i}.{blob.extension}").write_bytes(blob.data)
        cmd = [str(archiver), "a", str(archive.resolve()), "*"]
        logger.debug("Archiver command: %s", " ".join(cmd))
        subprocess.run(cmd, cwd=tmpdir, check=True, capture_output=True,
                       timeout=timeout)
    except (OSError, subprocess.SubprocessError) as exc:
        logger.warning("Packing %d images failed: %s", len(blobs), exc)
        raise ZipFailed() from exc
    finally:
        shutil.rmtree(tmpdir, ignore_errors=True)
    return archive
