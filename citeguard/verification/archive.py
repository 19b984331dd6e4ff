"""Per-page citation archive files (YAML, one file per page)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import ValidationError

from citeguard.models import CitationArchiveFile
from citeguard.pages import write_text_atomic

logger = logging.getLogger(__name__)


def archive_path(archive_dir: str | Path, page_id: str) -> Path:
    return Path(archive_dir) / f"{page_id}.yaml"


def write_citation_archive(archive_dir: str | Path, archive: CitationArchiveFile) -> Path:
    """Overwrite the page's archive file with *archive* in one atomic step."""
    path = archive_path(archive_dir, archive.page_id)
    text = yaml.safe_dump(
        archive.model_dump(mode="json"),
        sort_keys=False,
        allow_unicode=True,
        width=120,
    )
    write_text_atomic(path, text)
    logger.info("Wrote citation archive %s (%d citations)", path, archive.total_citations)
    return path


def read_citation_archive(archive_dir: str | Path, page_id: str) -> Optional[CitationArchiveFile]:
    path = archive_path(archive_dir, page_id)
    if not path.exists():
        return None
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return CitationArchiveFile.model_validate(data)
    except (OSError, yaml.YAMLError, ValidationError) as exc:
        logger.warning("Failed to read citation archive for %s: %s", page_id, exc)
        return None


def list_archived_pages(archive_dir: str | Path) -> List[str]:
    root = Path(archive_dir)
    if not root.is_dir():
        return []
    return sorted(p.stem for p in root.glob("*.yaml") if p.is_file())
