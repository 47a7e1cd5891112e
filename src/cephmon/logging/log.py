# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

#src/cephmon/logging/log.py

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

DEFAULT_LOG_DIR = Path.home() / ".cephmon" / "logs"
KEEP_RUNS = 50


class _RunIdFilter(logging.Filter):
    """Stamps every record with the short run id so parallel runs can be told apart."""

    def __init__(self, run_id: str):
        super().__init__()
        self.short_id = run_id[:8]

    def filter(self, record: logging.LogRecord) -> bool:
        record.run = self.short_id
        return True


def _prune_old_runs(base_dir: Path, prefix: str, current: Path, keep: int) -> None:
    # the current run always survives and counts towards keep
    older = sorted(
        (p for p in base_dir.glob(f"{prefix}-*.log") if p != current),
        key=lambda p: p.stat().st_mtime,
    )
    excess = len(older) - max(keep - 1, 0)
    for old in older[:max(excess, 0)]:
        old.unlink(missing_ok=True)


def init_logging(
    *,
    base_dir: Path | None = None,
    name: str = "cephmon",
    cluster: Optional[str] = None,
    verbose: bool = False,
    keep: int = KEEP_RUNS,
) -> tuple[logging.Logger, str, Path]:
    """
    One log file per reconcile run, named after the cluster when given.
    The file gets every placement and poll at DEBUG; the console gets INFO,
    or DEBUG with --debug. Only the newest `keep` run files are kept.
    """
    run_id = str(uuid.uuid4())

    base_dir = base_dir or DEFAULT_LOG_DIR
    base_dir.mkdir(parents=True, exist_ok=True)

    prefix = f"{name}-{cluster}" if cluster else name
    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    log_path = base_dir / f"{prefix}-{ts}-{run_id}.log"

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    for h in list(logger.handlers):
        h.close()
        logger.removeHandler(h)
    logger.propagate = False

    run_filter = _RunIdFilter(run_id)
    file_fmt = logging.Formatter(
        "%(asctime)s | %(run)s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_fmt = logging.Formatter("%(levelname)-7s | %(message)s")

    fh = logging.FileHandler(log_path)
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(file_fmt)
    fh.addFilter(run_filter)

    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)
    ch.setFormatter(console_fmt)

    logger.addHandler(fh)
    logger.addHandler(ch)

    _prune_old_runs(base_dir, prefix, log_path, keep)

    logger.info("=== cephmon run started%s ===", f" for {cluster}" if cluster else "")
    logger.debug("run_id=%s", run_id)
    logger.info("log_file=%s", log_path)

    return logger, run_id, log_path
