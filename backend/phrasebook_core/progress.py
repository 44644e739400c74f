"""Studied-progress map: mutations and legacy key migration"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence

from phrasebook_core.identity import derive_legacy_id

logger = logging.getLogger(__name__)

# Migration sources in precedence order
MIGRATION_SOURCES = ("current", "legacy_hash", "audio", "index")


@dataclass
class MigrationResult:
    """Outcome of a migration run"""
    progress: Dict[str, bool]
    changed: bool
    carried: Dict[str, int] = field(default_factory=lambda: {s: 0 for s in MIGRATION_SOURCES})
    dropped: List[str] = field(default_factory=list)


class StudyProgress:
    """Pure operations on a progress map (id -> True)"""

    @staticmethod
    def is_studied(progress: Mapping[Any, Any], phrase_id: str) -> bool:
        return bool(progress.get(phrase_id))

    @staticmethod
    def studied_count(progress: Mapping[Any, Any]) -> int:
        return sum(1 for value in progress.values() if value)

    @staticmethod
    def mark_studied(progress: Dict[str, bool], phrase_id: str) -> Dict[str, bool]:
        """Return a map with phrase_id marked studied"""
        if progress.get(phrase_id) is True:
            return progress
        updated = dict(progress)
        updated[phrase_id] = True
        return updated

    @staticmethod
    def unmark_studied(progress: Dict[str, bool], phrase_id: str) -> Dict[str, bool]:
        """Return a map without phrase_id; the same map if it was absent"""
        if phrase_id not in progress:
            return progress
        updated = dict(progress)
        del updated[phrase_id]
        return updated

    @staticmethod
    def clear_all(progress: Dict[str, bool]) -> Dict[str, bool]:
        """Empty the map. Callers must confirm with the user first."""
        return {}

    @staticmethod
    def rename(progress: Dict[str, bool], old_id: str, new_id: str) -> Dict[str, bool]:
        """
        Move a studied mark to a new id (after an edit changed the phrase id)

        Args:
            progress: Current progress map
            old_id: Identifier before the edit
            new_id: Identifier after the edit

        Returns:
            Updated map; the same map when there is nothing to move
        """
        if old_id == new_id or not progress.get(old_id):
            return progress
        updated = StudyProgress.unmark_studied(progress, old_id)
        return StudyProgress.mark_studied(updated, new_id)

    @staticmethod
    def sanitize(progress: Mapping[Any, Any]) -> Dict[str, bool]:
        """Keep only truthy entries, keyed by string"""
        return {str(key): True for key, value in progress.items() if value}


class ProgressMigrator:
    """Re-key a progress map from obsolete identifier schemes to current ids"""

    @staticmethod
    def _source_for(phrase, index: int, progress: Mapping[Any, Any]):
        if progress.get(phrase.id):
            return "current"
        if progress.get(derive_legacy_id(phrase.korean, phrase.english)):
            return "legacy_hash"
        if phrase.audio and progress.get(phrase.audio):
            return "audio"
        if progress.get(str(index)) or progress.get(index):
            return "index"
        return None

    @staticmethod
    def migrate(phrases: Sequence, progress: Mapping[Any, Any]) -> Dict[str, bool]:
        """
        Compute the progress map keyed by current ids

        For each phrase the first matching source wins: current id,
        legacy-simple hash, audio filename, list position.

        Args:
            phrases: Current phrases in load order
            progress: Previously persisted map (any key scheme)

        Returns:
            New map containing only current ids of studied phrases
        """
        return ProgressMigrator.run(phrases, progress).progress

    @staticmethod
    def needs_rewrite(
        phrases: Sequence,
        progress: Mapping[Any, Any],
        migrated: Mapping[str, bool]
    ) -> bool:
        """
        Whether migrated differs from the current-id subset of progress

        A False result means persisting migrated would change nothing.
        """
        current_ids = {phrase.id for phrase in phrases}
        existing = {key for key, value in progress.items() if value and key in current_ids}
        return existing != set(migrated)

    @staticmethod
    def run(phrases: Sequence, progress: Mapping[Any, Any]) -> MigrationResult:
        """
        Migrate and report what happened

        Returns:
            MigrationResult with the new map, the rewrite flag, per-source
            counts and the studied keys that matched no phrase
        """
        progress = progress or {}
        migrated: Dict[str, bool] = {}
        carried = {source: 0 for source in MIGRATION_SOURCES}
        used_keys = set()

        for index, phrase in enumerate(phrases):
            if phrase.id in migrated:
                continue
            source = ProgressMigrator._source_for(phrase, index, progress)
            if source is None:
                continue
            migrated[phrase.id] = True
            carried[source] += 1
            if source == "current":
                used_keys.add(phrase.id)
            elif source == "legacy_hash":
                used_keys.add(derive_legacy_id(phrase.korean, phrase.english))
            elif source == "audio":
                used_keys.add(phrase.audio)
            else:
                used_keys.update((str(index), index))

        dropped = sorted(
            str(key) for key, value in progress.items()
            if value and key not in used_keys and key not in migrated
        )
        changed = ProgressMigrator.needs_rewrite(phrases, progress, migrated)

        if changed:
            logger.info(
                f"Progress migrated: {len(migrated)} studied, "
                f"{sum(carried.values()) - carried['current']} re-keyed, {len(dropped)} dropped"
            )
        else:
            logger.debug("Progress already uses current ids; nothing to rewrite")

        return MigrationResult(progress=migrated, changed=changed, carried=carried, dropped=dropped)
