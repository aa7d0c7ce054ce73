"""Create-or-resolve service for persistent tag identities.

Every casing and spacing variant of a tag name resolves to one row keyed by
``canonical_name``. Concurrent creators race on the unique constraint; the
loser re-reads the winner instead of surfacing a conflict.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from nuggets.core.db import get_session_factory
from nuggets.core.logging import get_logger
from nuggets.core.settings import get_settings
from nuggets.models.schema import Tag, TagStatus
from nuggets.utils.error_logger import log_error
from nuggets.utils.tags import normalize_tag_name

logger = get_logger(__name__)


def _status_value(status: TagStatus | str | None) -> str:
    if status is None:
        return TagStatus.ACTIVE.value
    return TagStatus(status).value


def find_tag_by_canonical_name(db: Session, canonical_name: str) -> Tag | None:
    return db.query(Tag).filter(Tag.canonical_name == canonical_name).first()


def _resolve_existing(db: Session, tag: Tag, raw_name: str, status: TagStatus | str | None) -> Tag:
    changed = False
    if tag.status != TagStatus.ACTIVE.value:
        old_status = tag.status
        tag.status = _status_value(status)
        # The caller's latest casing becomes the display name
        tag.raw_name = raw_name
        changed = True
        logger.info(
            "Reactivated tag %s",
            tag.canonical_name,
            extra={
                "operation": "tag_reactivate",
                "item_id": tag.id,
                "context_data": {"old_status": old_status, "new_status": tag.status},
            },
        )
    elif tag.raw_name != raw_name:
        old_raw_name = tag.raw_name
        tag.raw_name = raw_name
        changed = True
        logger.info(
            "Updated tag casing %s -> %s",
            old_raw_name,
            raw_name,
            extra={
                "operation": "tag_recase",
                "item_id": tag.id,
                "context_data": {"old_raw_name": old_raw_name, "new_raw_name": raw_name},
            },
        )

    if changed:
        db.commit()
        db.refresh(tag)
    return tag


def create_or_resolve_tag(
    db: Session,
    name: str,
    *,
    status: TagStatus | str | None = None,
    is_official: bool = False,
) -> Tag:
    """Return the tag for ``name``, creating it if no variant exists yet.

    Args:
        db: Database session. The service commits its own changes.
        name: Free-text tag name in any casing/spacing.
        status: Status for new or reactivated tags (defaults to active).
        is_official: Flag stored on newly created tags.

    Returns:
        The single tag row whose ``canonical_name`` matches ``name``.

    Raises:
        TagNameError: If ``name`` is empty after normalization.
    """
    raw_name, canonical_name = normalize_tag_name(name)

    existing = find_tag_by_canonical_name(db, canonical_name)
    if existing is not None:
        return _resolve_existing(db, existing, raw_name, status)

    tag = Tag(
        raw_name=raw_name,
        canonical_name=canonical_name,
        aliases=[],
        type="tag",
        status=_status_value(status),
        is_official=is_official,
        usage_count=0,
    )
    db.add(tag)

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Tag creation hit duplicate constraint for %s: %s", canonical_name, exc)
        winner = find_tag_by_canonical_name(db, canonical_name)
        if winner is None:
            raise
        logger.info(
            "Resolved concurrent tag creation for %s",
            canonical_name,
            extra={"operation": "tag_create_race", "item_id": winner.id},
        )
        return winner

    db.refresh(tag)
    logger.info(
        "Created tag %s",
        canonical_name,
        extra={
            "operation": "tag_create",
            "item_id": tag.id,
            "context_data": {"raw_name": raw_name, "status": tag.status},
        },
    )
    return tag


def create_or_resolve_tags(
    names: Iterable[str],
    *,
    status: TagStatus | str | None = None,
    is_official: bool = False,
    session_factory: Callable[[], Session] | None = None,
    max_workers: int | None = None,
) -> dict[str, Tag]:
    """Resolve many tag names concurrently.

    Each name runs in its own session on a worker thread. A failing name is
    logged and left out of the result; it never aborts the batch.

    Returns:
        Mapping of canonical name to detached tag row.
    """
    factory = session_factory or get_session_factory()
    workers = max_workers or get_settings().tag_batch_workers
    names = list(names)
    results: dict[str, Tag] = {}

    def _resolve_one(name: str) -> Tag:
        db = factory()
        try:
            tag = create_or_resolve_tag(db, name, status=status, is_official=is_official)
            db.refresh(tag)
            db.expunge(tag)
            return tag
        finally:
            db.close()

    if not names:
        return results

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(_resolve_one, name): name for name in names}
        for future in as_completed(futures):
            name = futures[future]
            try:
                tag = future.result()
            except Exception as e:
                log_error(
                    "tag_service",
                    e,
                    operation="create_or_resolve_tags",
                    context={"name": name},
                )
                continue
            results[tag.canonical_name] = tag

    logger.info(
        "Resolved %d/%d tags",
        len(results),
        len(names),
        extra={"operation": "tag_batch", "context_data": {"requested": len(names), "resolved": len(results)}},
    )
    return results
