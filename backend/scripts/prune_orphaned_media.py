"""Maintenance script to delete media objects no user record references.

Best-effort deletes during avatar/cover replacement can leave the old object
behind; this sweeps them up.

Usage:
    uv run python scripts/prune_orphaned_media.py

Environment overrides:
    ORPHAN_MIN_AGE_MINUTES=60
    ORPHAN_MAX_DELETES_PER_RUN=500
    ORPHAN_DRY_RUN=false
"""

from __future__ import annotations

import asyncio
import os
import sys
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from time import perf_counter
from typing import Any, cast

from sqlalchemy import select

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from core import settings  # noqa: E402
from db.session import AsyncSessionMaker  # noqa: E402
from models import User  # noqa: E402
from services.storage import (  # noqa: E402
    StorageConfig,
    delete_object,
    get_minio_client,
)

MIN_AGE_ENV = "ORPHAN_MIN_AGE_MINUTES"
MAX_DELETES_ENV = "ORPHAN_MAX_DELETES_PER_RUN"
DRY_RUN_ENV = "ORPHAN_DRY_RUN"
DEFAULT_MIN_AGE_MINUTES = 60
DEFAULT_MAX_DELETES_PER_RUN = 500


@dataclass(frozen=True)
class StoredObject:
    key: str
    last_modified: datetime | None


def _parse_positive_int(raw_value: str | None, *, default: int, label: str) -> int:
    if raw_value is None or raw_value.strip() == "":
        return default
    try:
        parsed = int(raw_value)
    except ValueError as exc:
        raise ValueError(f"{label} must be an integer") from exc
    if parsed <= 0:
        raise ValueError(f"{label} must be positive")
    return parsed


def _parse_bool(raw_value: str | None) -> bool:
    if raw_value is None:
        return False
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def select_orphans(
    objects: Iterable[StoredObject],
    referenced: set[str],
    *,
    now: datetime,
    min_age: timedelta,
    limit: int,
) -> list[str]:
    """Return keys of unreferenced objects old enough to not be mid-upload."""
    orphans: list[str] = []
    for stored in objects:
        if len(orphans) >= limit:
            break
        if stored.key in referenced:
            continue
        # Fresh uploads are committed to a user record only after they land.
        if stored.last_modified is None or now - stored.last_modified < min_age:
            continue
        orphans.append(stored.key)
    return orphans


async def _load_referenced_keys() -> set[str]:
    async with AsyncSessionMaker() as session:
        result = await session.execute(
            select(cast(Any, User.avatar_id), cast(Any, User.cover_image_id))
        )
        referenced: set[str] = set()
        for avatar_id, cover_image_id in result.all():
            referenced.update(key for key in (avatar_id, cover_image_id) if key)
        return referenced


def _list_stored_objects(config: StorageConfig) -> list[StoredObject]:
    client = get_minio_client()
    return [
        StoredObject(key=item.object_name, last_modified=item.last_modified)
        for item in client.list_objects(
            config.bucket,
            prefix=f"{config.key_prefix}/",
            recursive=True,
        )
        if item.object_name
    ]


async def run() -> None:
    min_age_minutes = _parse_positive_int(
        os.getenv(MIN_AGE_ENV),
        default=DEFAULT_MIN_AGE_MINUTES,
        label=MIN_AGE_ENV,
    )
    max_deletes = _parse_positive_int(
        os.getenv(MAX_DELETES_ENV),
        default=DEFAULT_MAX_DELETES_PER_RUN,
        label=MAX_DELETES_ENV,
    )
    dry_run = _parse_bool(os.getenv(DRY_RUN_ENV))
    config = StorageConfig.from_settings(settings)

    started_at = perf_counter()
    referenced = await _load_referenced_keys()
    stored = await asyncio.to_thread(_list_stored_objects, config)
    orphans = select_orphans(
        stored,
        referenced,
        now=datetime.now(timezone.utc),
        min_age=timedelta(minutes=min_age_minutes),
        limit=max_deletes,
    )

    deleted = 0
    for key in orphans:
        if dry_run:
            print(f"Would delete orphaned media object {key}")
            continue
        await asyncio.to_thread(delete_object, key, get_minio_client(), config.bucket)
        deleted += 1

    elapsed_ms = int((perf_counter() - started_at) * 1000)
    print(
        "Orphaned media prune complete: "
        f"objects_scanned={len(stored)}, referenced={len(referenced)}, "
        f"orphans={len(orphans)}, deleted={deleted}, dry_run={dry_run}, "
        f"elapsed_ms={elapsed_ms}"
    )


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
