"""Deployment manifest schemas.

The manifest is the local record of what was last published to a site. It
is validated at the deserialization boundary: a missing or ill-typed
required field is an error, never a silent default.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)

from versui.exceptions import ValidationError
from versui.services.datetime_service import format_iso, now_utc, parse_datetime
from versui.services.identifier_service import is_valid_object_id
from versui.services.path_service import validate_resource_key

MANIFEST_FORMAT_VERSION = 1


class ResourceDescriptor(BaseModel):
    """Remote record of one published file.

    ``blob_id`` is the opaque pointer into blob storage and ``blob_hash`` the
    content hash the file had when it was published. ``path`` is the
    manifest key and is not repeated inside the serialized entry.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    path: str = Field(exclude=True, strict=True, min_length=1)
    blob_id: str = Field(strict=True, min_length=1)
    blob_hash: str = Field(strict=True, min_length=1)
    content_type: str = Field(strict=True, min_length=1)
    size: int = Field(strict=True, ge=0)


class Manifest(BaseModel):
    """Versioned snapshot of a site's published resources."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    version: int = Field(strict=True, ge=MANIFEST_FORMAT_VERSION)
    site_id: str = Field(strict=True)
    deployed_at: datetime
    resources: dict[str, ResourceDescriptor]

    @model_validator(mode="before")
    @classmethod
    def _inject_resource_paths(cls, data: Any) -> Any:
        """Copy each ``resources`` key into its entry as ``path``."""
        if not isinstance(data, dict):
            return data
        resources = data.get("resources")
        if isinstance(resources, dict):
            data = dict(data)
            data["resources"] = {
                key: {**entry, "path": key} if isinstance(entry, dict) else entry
                for key, entry in resources.items()
            }
        return data

    @field_validator("site_id")
    @classmethod
    def _check_site_id(cls, value: str) -> str:
        if not is_valid_object_id(value):
            raise ValueError("site_id must be 0x followed by 64 hex digits")
        return value.lower()

    @field_validator("deployed_at", mode="before")
    @classmethod
    def _parse_deployed_at(cls, value: Any) -> datetime:
        if not isinstance(value, (str, datetime)):
            raise ValueError("deployed_at must be an ISO 8601 timestamp")
        return parse_datetime(value)

    @field_validator("resources")
    @classmethod
    def _check_resource_keys(
        cls, resources: dict[str, ResourceDescriptor]
    ) -> dict[str, ResourceDescriptor]:
        for key, descriptor in resources.items():
            if key != descriptor.path:
                raise ValueError(f"resource key {key!r} does not match path {descriptor.path!r}")
            if not key.startswith("/"):
                raise ValueError(f"resource key {key!r} is not an absolute path")
            try:
                validate_resource_key(key)
            except ValidationError as exc:
                raise ValueError(str(exc)) from exc
        return resources

    @field_serializer("deployed_at")
    def _serialize_deployed_at(self, value: datetime) -> str:
        return format_iso(value)

    @classmethod
    def initial(cls, site_id: str, resources: dict[str, ResourceDescriptor]) -> Manifest:
        """Build the manifest written after a site's first successful deploy."""
        return cls(
            version=MANIFEST_FORMAT_VERSION,
            site_id=site_id,
            deployed_at=now_utc(),
            resources=resources,
        )

    def next_version(self, resources: dict[str, ResourceDescriptor]) -> Manifest:
        """Return the successor manifest with a bumped version and fresh timestamp."""
        return Manifest(
            version=self.version + 1,
            site_id=self.site_id,
            deployed_at=now_utc(),
            resources=resources,
        )
