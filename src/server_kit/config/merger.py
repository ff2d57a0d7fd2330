from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence

from server_kit.config.environment import EnvironmentSnapshot
from server_kit.config.loader import Document, freeze_document, load_document
from server_kit.config.sources import ConfigSource, EnvironmentFile

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MergedResult:
    """
    Outcome of replaying the declared sources.

    `document` is the last structured file, read-only. `environment` is the
    final snapshot. `document_shadowed` names the variables that an
    environment file set before the active document was declared; the
    document takes precedence over those for fields it sets.
    """

    document: Mapping[str, Any]
    environment: Mapping[str, str]
    document_source: Optional[Path] = None
    environment_files: Mapping[str, Path] = field(default_factory=lambda: MappingProxyType({}))
    document_shadowed: frozenset[str] = frozenset()

    def describe_document(self) -> str:
        return str(self.document_source) if self.document_source is not None else "<no config file>"


def merge_sources(sources: Sequence[ConfigSource], snapshot: EnvironmentSnapshot) -> MergedResult:
    """
    Replay declared sources in order.

    Environment files write into the snapshot. Each structured file replaces the
    current document wholesale, so only the last one declared contributes keys.
    """
    document: Document = {}
    document_source: Optional[Path] = None
    document_position = -1

    for position, source in enumerate(sources):
        if isinstance(source, EnvironmentFile):
            snapshot.apply_file(source.path, position)
            continue

        document = load_document(source.path, source.format)
        if document_source is not None:
            logger.info(
                "config.document_replaced previous=%s path=%s",
                document_source,
                source.path,
            )
        document_source = source.path
        document_position = position
        logger.info(
            "config.source_applied kind=%s path=%s keys=%d",
            source.kind,
            source.path,
            len(document),
        )

    return MergedResult(
        document=freeze_document(document),
        environment=snapshot.freeze(),
        document_source=document_source,
        environment_files=snapshot.file_origins(),
        document_shadowed=snapshot.set_before(document_position),
    )
