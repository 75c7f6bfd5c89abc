"""Permission grant schema, typed configuration and state.

The schema is declared once as a table of FieldSpec entries. Configuration
coming from a caller (CLI arguments, JSON body, test dict) is validated
against it exactly once, in PermissionGrantConfig.from_mapping, before any
remote call is made.
"""
from __future__ import annotations
from dataclasses import dataclass, asdict, fields, replace
from typing import Any, Callable, Mapping, Optional

from .errors import ConfigValidationError
from .validators import (
    parse_timestamp,
    validate_in_set,
    validate_non_empty,
    validate_timestamp,
    validate_uuid,
)

CONSENT_ALL_PRINCIPAL = "AllPrincipal"
CONSENT_PRINCIPAL = "Principal"
CONSENT_TYPES = (CONSENT_ALL_PRINCIPAL, CONSENT_PRINCIPAL)


def _validate_consent_type(value: str, field: str) -> str:
    return validate_in_set(value, field, CONSENT_TYPES)


@dataclass(frozen=True)
class FieldSpec:
    """One attribute of the resource schema.

    Attributes:
        name: Attribute name in configuration and state
        wire_name: Property name in the Graph API payload
        required: Must be present in configuration
        force_new: A change requires delete + create
        computed: Set by the remote system only
        validate: Validator called as validate(value, name)
    """
    name: str
    wire_name: str
    required: bool = False
    force_new: bool = False
    computed: bool = False
    validate: Optional[Callable[[Any, str], Any]] = None

    @property
    def optional(self) -> bool:
        return not self.required and not self.computed


GRANT_SCHEMA: tuple[FieldSpec, ...] = (
    FieldSpec("client_id", "clientId", required=True, validate=validate_uuid),
    FieldSpec("object_id", "objectId", required=True, force_new=True, validate=validate_uuid),
    FieldSpec("resource_id", "resourceId", required=True, force_new=True, validate=validate_non_empty),
    FieldSpec("consent_type", "consentType", required=True, validate=_validate_consent_type),
    FieldSpec("principal_id", "principalId", force_new=True, validate=validate_uuid),
    FieldSpec("scope", "scope", validate=validate_non_empty),
    FieldSpec("start_time", "startTime", validate=validate_timestamp),
    FieldSpec("expiry_time", "expiryTime", validate=validate_timestamp),
    FieldSpec("grant_time", "grantTime", computed=True),
)

SCHEMA_BY_NAME = {spec.name: spec for spec in GRANT_SCHEMA}


@dataclass(frozen=True)
class PermissionGrantConfig:
    """Desired state of one permission grant, already validated."""
    client_id: str
    object_id: str
    resource_id: str
    consent_type: str
    principal_id: Optional[str] = None
    scope: Optional[str] = None
    start_time: Optional[str] = None
    expiry_time: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PermissionGrantConfig":
        """Validate raw configuration against GRANT_SCHEMA.

        Keys whose value is None count as absent. Every failing field is
        reported at once.

        Raises:
            ConfigValidationError: If any field is missing, unknown or invalid
        """
        errors: list[str] = []
        values: dict[str, Any] = {}

        for key in data:
            if key not in SCHEMA_BY_NAME:
                errors.append(f"{key} is not a permission grant attribute")

        for spec in GRANT_SCHEMA:
            raw = data.get(spec.name)
            if spec.computed:
                if raw is not None:
                    errors.append(f"{spec.name} is computed and cannot be set")
                continue
            if raw is None:
                if not spec.optional:
                    errors.append(f"{spec.name} is required")
                continue
            try:
                values[spec.name] = spec.validate(raw, spec.name) if spec.validate else raw
            except ValueError as exc:
                errors.append(str(exc))

        start, expiry = values.get("start_time"), values.get("expiry_time")
        if start and expiry and parse_timestamp(expiry) <= parse_timestamp(start):
            errors.append("expiry_time must be after start_time")

        if errors:
            raise ConfigValidationError(errors)
        return cls(**values)

    @classmethod
    def coerce(cls, desired: "PermissionGrantConfig | Mapping[str, Any]") -> "PermissionGrantConfig":
        """Return a validated config from either a mapping or a config instance."""
        if isinstance(desired, cls):
            return cls.from_mapping(desired.to_dict())
        return cls.from_mapping(desired)

    def to_dict(self) -> dict[str, Any]:
        """Set attributes only."""
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass(frozen=True)
class PermissionGrantState:
    """Recorded state of a permission grant, as persisted by the caller."""
    object_id: str
    client_id: Optional[str] = None
    resource_id: Optional[str] = None
    consent_type: Optional[str] = None
    principal_id: Optional[str] = None
    scope: Optional[str] = None
    start_time: Optional[str] = None
    expiry_time: Optional[str] = None
    grant_time: Optional[str] = None

    @property
    def id(self) -> str:
        return self.object_id

    @classmethod
    def from_config(cls, config: PermissionGrantConfig, **overrides: Any) -> "PermissionGrantState":
        values = asdict(config)
        values.update(overrides)
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        data = {"id": self.id}
        data.update(asdict(self))
        return data

    def matches(self, grant: Mapping[str, Any]) -> bool:
        """Check whether a remote grant is the one this state describes.

        Identity is client_id, resource_id and consent_type, plus
        principal_id when recorded. Attributes not recorded (a fresh
        import) are not compared.
        """
        for name in ("client_id", "resource_id", "consent_type", "principal_id"):
            expected = getattr(self, name)
            if expected is None:
                continue
            actual = grant.get(SCHEMA_BY_NAME[name].wire_name)
            if name in ("client_id", "principal_id"):
                if (actual or "").lower() != expected.lower():
                    return False
            elif actual != expected:
                return False
        return True

    def refreshed_from(self, grant: Mapping[str, Any]) -> "PermissionGrantState":
        """Copy remote values over the recorded attributes.

        Identity attributes are filled in only where not yet recorded;
        scope and the validity window are always refreshed.
        """
        updates: dict[str, Any] = {}
        for spec in GRANT_SCHEMA:
            if spec.name == "object_id" or spec.wire_name not in grant:
                continue
            value = grant.get(spec.wire_name)
            if spec.name in ("scope", "start_time", "expiry_time", "grant_time"):
                updates[spec.name] = value
            elif getattr(self, spec.name) is None:
                updates[spec.name] = value
        return replace(self, **updates)


@dataclass(frozen=True)
class Plan:
    """Difference between recorded and desired configuration."""
    changed: tuple[str, ...]
    replace_fields: tuple[str, ...]

    @property
    def has_changes(self) -> bool:
        return bool(self.changed)

    @property
    def requires_replace(self) -> bool:
        return bool(self.replace_fields)


def plan_changes(prior: PermissionGrantConfig, desired: PermissionGrantConfig) -> Plan:
    """Compare two configurations field by field."""
    changed = tuple(
        f.name for f in fields(PermissionGrantConfig)
        if getattr(prior, f.name) != getattr(desired, f.name)
    )
    replace_fields = tuple(name for name in changed if SCHEMA_BY_NAME[name].force_new)
    return Plan(changed=changed, replace_fields=replace_fields)
