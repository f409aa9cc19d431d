"""Export decision engine: which variables to activate and deactivate.

Everything here is pure. The orchestrator feeds in what it read from disk and
the session store, and applies the returned plan.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping
from typing import TYPE_CHECKING

from autoenv.models.diff import DiffResult, ExportPlan, SessionAction

if TYPE_CHECKING:
    from autoenv.models.envfile import EnvSnapshot
    from autoenv.models.sessions import Session

FINGERPRINT_BYTES = 8


def fingerprint(value: str) -> str:
    """Truncated SHA-256 of a value, enough to notice that it changed."""
    return hashlib.sha256(value.encode("utf-8")).digest()[:FINGERPRINT_BYTES].hex()


def fingerprints(snapshot: EnvSnapshot | None) -> dict[str, str]:
    if snapshot is None:
        return {}
    return {name: fingerprint(value) for name, value in snapshot.values.items()}


def compute_diff(snapshot: EnvSnapshot | None, prior_keys: Mapping[str, str]) -> DiffResult:
    """Added or changed keys are exported; keys missing from the snapshot are unset."""
    result = DiffResult()
    if snapshot is None:
        result.unset.update(prior_keys)
        return result

    for name, value in snapshot.values.items():
        if prior_keys.get(name) != fingerprint(value):
            result.export[name] = value
    result.unset.update(name for name in prior_keys if name not in snapshot.values)
    return result


def is_unchanged(origin: str | None, mtime_ns: int | None, session: Session | None) -> bool:
    """Same origin and same file timestamp as the last activation."""
    return (
        session is not None
        and origin is not None
        and mtime_ns is not None
        and session.project_path == origin
        and session.env_file_mtime == mtime_ns
    )


def plan_export(
    origin: str | None,
    snapshot: EnvSnapshot | None,
    session: Session | None,
    prior_keys: Mapping[str, str],
) -> ExportPlan:
    """Classify the current state and compute the resulting plan.

    ``origin`` is the matched project root (or the ad hoc directory), None when
    the shell is outside any tracked scope.
    """
    if origin is None:
        if session is None and not prior_keys:
            return ExportPlan(diff=DiffResult(), action=SessionAction.KEEP)
        return ExportPlan(
            diff=DiffResult(unset=set(prior_keys)),
            action=SessionAction.DELETE,
        )

    if snapshot is not None and is_unchanged(origin, snapshot.mtime_ns, session):
        return ExportPlan(diff=DiffResult(), action=SessionAction.KEEP, origin=origin)

    diff = compute_diff(snapshot, prior_keys)
    if session is not None and session.project_path != origin:
        # Leaving another project: anything it set that the new file lacks goes.
        new_names = snapshot.values if snapshot is not None else {}
        diff.unset.update(name for name in prior_keys if name not in new_names)

    if snapshot is None:
        action = SessionAction.DELETE if session is not None or prior_keys else SessionAction.KEEP
        return ExportPlan(diff=diff, action=action, origin=origin)

    return ExportPlan(
        diff=diff,
        action=SessionAction.RECORD,
        origin=origin,
        fingerprints=fingerprints(snapshot),
        mtime_ns=snapshot.mtime_ns,
    )
