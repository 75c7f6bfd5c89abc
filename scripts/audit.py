"""Signed audit trail of permission grant changes.

One JSON object per line in ``$AUDIT_LOG_DIR/grant-events.jsonl``. Each
record names the grant it concerns by identity (client, resource, consent
type, principal), the outcome, and for failures the failing operation and
replace phase. A record flagged ``drift`` means the remote grant was
deleted while the desired configuration still describes it.

Run directly to check every signature:
    python scripts/audit.py
"""

from __future__ import annotations
import datetime
import hashlib
import hmac
import json
import os
import sys
from pathlib import Path
from typing import Any, Iterator, Literal, Mapping, Optional

AUDIT_LOG_DIR = Path(os.environ.get("AUDIT_LOG_DIR", ".runtime/audit"))
AUDIT_LOG_FILE = AUDIT_LOG_DIR / "grant-events.jsonl"

DEMO_SIGNING_KEY = "demo-audit-signing-key-change-in-production"

EventType = Literal["grant_create", "grant_read", "grant_replace", "grant_delete", "grant_import"]
GRANT_EVENTS = ("grant_create", "grant_read", "grant_replace", "grant_delete", "grant_import")

# Attributes copied from a grant config or state into each record
GRANT_FIELDS = ("client_id", "resource_id", "consent_type", "principal_id", "scope", "expiry_time")


def _signing_key() -> bytes:
    """Key from AUDIT_LOG_SIGNING_KEY_FILE, then AUDIT_LOG_SIGNING_KEY, then the demo key.

    An empty AUDIT_LOG_SIGNING_KEY disables signing.
    """
    key_file = os.environ.get("AUDIT_LOG_SIGNING_KEY_FILE")
    if key_file and Path(key_file).is_file():
        return Path(key_file).read_text(encoding="utf-8").strip().encode("utf-8")
    if "AUDIT_LOG_SIGNING_KEY" in os.environ:
        return os.environ["AUDIT_LOG_SIGNING_KEY"].strip().encode("utf-8")
    return DEMO_SIGNING_KEY.encode("utf-8")


def _sign(record: dict[str, Any]) -> str:
    key = _signing_key()
    if not key:
        return ""
    canonical = json.dumps(record, sort_keys=True, separators=(",", ":"))
    return hmac.new(key, canonical.encode("utf-8"), hashlib.sha256).hexdigest()


def _grant_fields(grant: Any) -> dict[str, Any]:
    if grant is None:
        return {}
    values = grant.to_dict() if hasattr(grant, "to_dict") else dict(grant)
    return {name: values[name] for name in GRANT_FIELDS if values.get(name) is not None}


def _failure_fields(error: BaseException) -> dict[str, Any]:
    failure: dict[str, Any] = {
        "operation": getattr(error, "operation", None),
        "message": str(error),
    }
    status_code = getattr(error, "status_code", None)
    if status_code is not None:
        failure["remote_status"] = status_code
    phase = getattr(error, "phase", None)
    if phase:
        failure["phase"] = phase
        failure["drift"] = bool(getattr(error, "drift", False))
    return failure


def build_event(
    event_type: EventType,
    object_id: str,
    *,
    grant: Any = None,
    error: Optional[BaseException] = None,
    operator: str = "system",
    tenant: str = "",
) -> dict[str, Any]:
    """Build an unsigned audit record.

    Args:
        event_type: One of GRANT_EVENTS
        object_id: Application object ID the grant belongs to
        grant: Config, state or mapping the identity fields are taken from
        error: Remote failure; turns the record into a failure record
        operator: Who triggered the change ("cli", "api", ...)
        tenant: Azure AD tenant

    Raises:
        ValueError: If event_type is not a grant event
    """
    if event_type not in GRANT_EVENTS:
        raise ValueError(f"Unknown audit event {event_type!r}; expected one of {', '.join(GRANT_EVENTS)}")

    record: dict[str, Any] = {
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "event_type": event_type,
        "tenant": tenant,
        "object_id": object_id,
        "operator": operator,
        "outcome": "failure" if error is not None else "success",
        "grant": _grant_fields(grant),
    }
    if error is not None:
        record["failure"] = _failure_fields(error)
    return record


def append_event(record: dict[str, Any]) -> None:
    """Sign a record and append it to the audit log (dir 0700, file 0600)."""
    AUDIT_LOG_DIR.mkdir(parents=True, exist_ok=True)
    AUDIT_LOG_DIR.chmod(0o700)

    signature = _sign(record)
    if signature:
        record = dict(record, signature=signature)

    with AUDIT_LOG_FILE.open("a", encoding="utf-8") as f:
        f.write(json.dumps(record, ensure_ascii=False) + "\n")
    AUDIT_LOG_FILE.chmod(0o600)


def record_grant_event(event_type: EventType, object_id: str, **kwargs: Any) -> bool:
    """Build and append a record; write failures are reported on stderr.

    Returns:
        True if the record was written
    """
    record = build_event(event_type, object_id, **kwargs)
    try:
        append_event(record)
    except OSError as e:
        print(f"[audit] Warning: could not record {event_type} for {object_id}: {e}", file=sys.stderr)
        return False
    return True


def iter_events(object_id: Optional[str] = None) -> Iterator[Mapping[str, Any]]:
    """Yield logged records, optionally only those of one application."""
    if not AUDIT_LOG_FILE.exists():
        return
    with AUDIT_LOG_FILE.open("r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            record = json.loads(line)
            if object_id is None or record.get("object_id") == object_id:
                yield record


def drifted_grants() -> list[str]:
    """Object IDs whose latest record is a replace that left the grant deleted."""
    latest: dict[str, Mapping[str, Any]] = {}
    for record in iter_events():
        latest[record["object_id"]] = record
    return sorted(
        object_id for object_id, record in latest.items()
        if record.get("failure", {}).get("drift")
    )


def verify_audit_log() -> tuple[int, int]:
    """Check every signature.

    Returns:
        Tuple of (total_records, valid_signatures)
    """
    total = valid = 0
    if not AUDIT_LOG_FILE.exists():
        return total, valid
    with AUDIT_LOG_FILE.open("r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            total += 1
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                continue
            signature = record.pop("signature", "")
            if signature and hmac.compare_digest(signature, _sign(record)):
                valid += 1
    return total, valid


if __name__ == "__main__":
    total, valid = verify_audit_log()
    print(f"Audit log: {valid}/{total} records with valid signatures")
    for object_id in drifted_grants():
        print(f"WARNING: grant for application {object_id} was deleted by a failed replace")
    sys.exit(0 if total == valid else 1)
