"""Batch regeneration for the periodic sweep.

The scheduler that runs this every minute, the store query, the writes and
the "energy is back" notifications all belong to the caller. This module only
decides, for a batch of snapshots, who regenerated and what to write back.

Callers must serialize read-compute-write per actor (row lock, version check
or conditional update); two overlapping sweeps on a stale snapshot would
otherwise overwrite each other.
"""
import logging
import math
from datetime import datetime
from typing import Iterable

from pydantic import ValidationError

from tictactoe_engine.domain.resource_rules import calculate_current
from tictactoe_engine.models.dc_models import (
    RegenerationReport,
    RegenerationUpdate,
    ResourceConfig,
    ResourceSnapshot,
)


def is_due_for_regeneration(
    snapshot: ResourceSnapshot, config: ResourceConfig, now: datetime
) -> bool:
    """Below max and at least one full period past the anchor (or no anchor yet)."""
    if not math.isfinite(snapshot.level) or snapshot.level < 0:
        return False
    if snapshot.level >= config.max_level:
        return False
    if snapshot.last_regen_time is None:
        return True
    return snapshot.last_regen_time <= now - config.regen_period


def _coerce_snapshot(entry) -> ResourceSnapshot | None:
    if isinstance(entry, ResourceSnapshot):
        return entry
    try:
        return ResourceSnapshot.model_validate(entry)
    except ValidationError:
        return None


def regenerate_snapshots(
    snapshots: Iterable, config: ResourceConfig, now: datetime
) -> RegenerationReport:
    """Compute the write-back for every actor whose level went up.

    Args:
        snapshots (Iterable): ResourceSnapshot models, dicts or ORM rows
        config (ResourceConfig): Resource settings
        now (datetime): Time of the sweep

    Returns:
        RegenerationReport: per-actor updates plus scanned/skipped counts
    """
    scanned = 0
    skipped = 0
    updates = []

    for entry in snapshots:
        scanned += 1
        snapshot = _coerce_snapshot(entry)
        if snapshot is None:
            logging.error(f"Skipping malformed resource snapshot: {entry!r}")
            skipped += 1
            continue

        if not math.isfinite(snapshot.level) or snapshot.level < 0:
            logging.error(
                f"Skipping resource snapshot {snapshot.actor_id}: invalid level {snapshot.level}"
            )
            skipped += 1
            continue

        try:
            if not is_due_for_regeneration(snapshot, config, now):
                skipped += 1
                continue
        except TypeError as e:
            logging.error(f"Skipping resource snapshot {snapshot.actor_id}: {e}")
            skipped += 1
            continue

        status = calculate_current(
            snapshot.level,
            snapshot.last_update_time,
            snapshot.last_regen_time,
            config,
            now,
        )
        if status.current_level <= snapshot.level:
            skipped += 1
            continue

        updates.append(
            RegenerationUpdate(
                actor_id=snapshot.actor_id,
                previous_level=snapshot.level,
                new_level=status.current_level,
                last_regen_time=status.next_anchor_time or now,
                last_update_time=now,
                became_playable=(
                    snapshot.level < config.cost_per_action
                    and status.current_level >= config.cost_per_action
                ),
            )
        )

    if updates:
        logging.info(f"Regenerated resource for {len(updates)} actors")
    return RegenerationReport(scanned=scanned, skipped=skipped, updates=updates)
