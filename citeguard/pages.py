"""Page files on disk: lookup, reads and atomic whole-file writes."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from citeguard.errors import PageNotFoundError

logger = logging.getLogger(__name__)

PAGE_SUFFIXES = (".mdx", ".md")


def find_page_file(content_dir: str | Path, page_id: str) -> Optional[Path]:
    """Locate ``<page_id>.mdx`` or ``<page_id>.md`` anywhere under *content_dir*."""
    root = Path(content_dir)
    if not root.is_dir():
        return None
    for suffix in PAGE_SUFFIXES:
        for candidate in sorted(root.rglob(f"{page_id}{suffix}")):
            if candidate.is_file():
                return candidate
    return None


def resolve_page_file(content_dir: str | Path, page_id: str) -> Path:
    path = find_page_file(content_dir, page_id)
    if path is None:
        raise PageNotFoundError(f'Page "{page_id}" not found under {content_dir}')
    return path


def read_page(path: str | Path) -> str:
    return Path(path).read_text(encoding="utf-8")


def write_text_atomic(path: str | Path, content: str) -> None:
    """Replace *path* with *content* in one step.

    The text goes to a temporary file in the same directory which is then
    renamed over the target, so an interrupted write never leaves a
    half-written page behind.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=target.parent,
        prefix=f".{target.name}.",
        suffix=".tmp",
        delete=False,
    )
    try:
        with tmp:
            tmp.write(content)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp.name, target)
    except BaseException:
        Path(tmp.name).unlink(missing_ok=True)
        raise
    logger.debug("Wrote %s (%d chars)", target, len(content))
