"""
Tests for output batching, file writing and archive packing.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest import mock

import pytest

from imagetools import delivery
from imagetools.delivery import (DeliveryConfig, SendType, ZipType, chunks,
                                 plan_delivery, write_outputs, zip_outputs)
from imagetools.exceptions import ZipFailed
from imagetools.types import MIME_GIF, MIME_PNG, EncodedImage


def _blobs(n: int, mime: str = MIME_PNG) -> list[EncodedImage]:
    return [EncodedImage(bytes([i]), mime) for i in range(n)]


class TestChunks:
    def test_split(self):
        assert chunks([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            chunks([1], 0)


class TestPlanDelivery:
    def test_under_threshold_one_batch(self):
        plan = plan_delivery(_blobs(3))
        assert plan.send_type is None
        assert [len(b) for b in plan.batches] == [3]

    def test_one_by_one(self):
        plan = plan_delivery(_blobs(3), DeliveryConfig(send_one_by_one=True))
        assert [len(b) for b in plan.batches] == [1, 1, 1]

    def test_overflow_multi(self):
        plan = plan_delivery(_blobs(10), DeliveryConfig(overflow_send_type=SendType.MULTI))
        assert plan.send_type is SendType.MULTI
        assert [len(b) for b in plan.batches] == [9, 1]

    def test_overflow_forward_one_by_one(self):
        config = DeliveryConfig(one_by_one_in_forward=True)
        plan = plan_delivery(_blobs(10), config)
        assert plan.send_type is SendType.FORWARD
        assert len(plan.batches) == 10

    def test_overflow_file(self):
        plan = plan_delivery(_blobs(10), DeliveryConfig(overflow_send_type=SendType.FILE))
        assert plan.needs_archive
        assert [len(b) for b in plan.batches] == [10]


class TestWriteOutputs:
    def test_single(self, tmp_dir):
        paths = write_outputs(_blobs(1, MIME_GIF), tmp_dir, stem="rev")
        assert paths == [tmp_dir / "rev.gif"]
        assert paths[0].read_bytes() == b"\x00"

    def test_many_numbered(self, tmp_dir):
        paths = write_outputs(_blobs(12), tmp_dir / "out")
        assert paths[0].name == "output-00.png"
        assert paths[11].name == "output-11.png"
        assert all(p.exists() for p in paths)


class TestZipOutputs:
    def test_runs_archiver_in_staging_dir(self, tmp_dir):
        seen = {}

        def fake_run(cmd, cwd, **kwargs):
            seen["cmd"] = cmd
            seen["files"] = sorted(p.name for p in Path(cwd).iterdir())
            return subprocess.CompletedProcess(cmd, 0)

        with mock.patch.object(delivery.subprocess, "run", side_effect=fake_run):
            archive = zip_outputs(_blobs(2), tmp_dir, archiver="/usr/bin/7z",
                                  file_type=ZipType.ZIP)
        assert archive.parent == tmp_dir
        assert archive.suffix == ".zip"
        assert seen["cmd"][:2] == ["/usr/bin/7z", "a"]
        assert seen["cmd"][-1] == "*"
        assert seen["files"] == ["0.png", "1.png"]

    def test_archiver_failure(self, tmp_dir):
        error = subprocess.CalledProcessError(2, ["7z"])
        with mock.patch.object(delivery.subprocess, "run", side_effect=error):
            with pytest.raises(ZipFailed):
                zip_outputs(_blobs(2), tmp_dir)

    def test_archiver_missing(self, tmp_dir):
        with mock.patch.object(delivery.subprocess, "run",
                               side_effect=FileNotFoundError("7z")):
            with pytest.raises(ZipFailed):
                zip_outputs(_blobs(1), tmp_dir)
