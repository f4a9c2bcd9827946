from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from stack_scaler.services.errors import ConfigurationError


class Capacity(BaseModel):
    """The {min,max,desired} instance-count triple of a scaling group."""

    model_config = ConfigDict(frozen=True)

    min_size: int = Field(ge=0)
    max_size: int = Field(ge=0)
    desired_capacity: int = Field(ge=0)

    def is_consistent(self) -> bool:
        return self.min_size <= self.desired_capacity <= self.max_size

    def as_update_kwargs(self) -> dict[str, int]:
        return {
            "MinSize": self.min_size,
            "MaxSize": self.max_size,
            "DesiredCapacity": self.desired_capacity,
        }

    def __str__(self) -> str:
        return f"{self.min_size}/{self.max_size}/{self.desired_capacity}"


DEFAULT_CAPACITY = Capacity(min_size=1, max_size=2, desired_capacity=1)


class CapacityOverride(BaseModel):
    """Partial patch applied field-by-field over DEFAULT_CAPACITY."""

    model_config = ConfigDict(extra="forbid")

    min_size: Optional[int] = Field(default=None, ge=0)
    max_size: Optional[int] = Field(default=None, ge=0)
    desired_capacity: Optional[int] = Field(default=None, ge=0)

    def apply_to(self, base: Capacity) -> Capacity:
        patch = self.model_dump(exclude_none=True)
        return base.model_copy(update=patch)


class SessionConfig(BaseModel):
    """Mutable per-command session document.

    `collections` and `backups` are round-tripped: read at session start and
    written back after a suspend. One orchestrator owns an instance for the
    lifetime of one command; there is no locking.
    """

    dns_zone: str
    scaling: dict[str, CapacityOverride] = Field(default_factory=dict)
    collections: list[str] = Field(default_factory=list)
    backups: dict[str, str] = Field(default_factory=dict)
    # Capacity applied to every field on suspend; environments not listed go to 0.
    suspended: dict[str, int] = Field(default_factory=dict)

    @field_validator("dns_zone")
    @classmethod
    def _dns_zone_present(cls, value: str) -> str:
        value = value.strip().strip(".")
        if not value:
            raise ValueError("dns_zone must be provided")
        return value

    @field_validator("suspended")
    @classmethod
    def _suspended_non_negative(cls, value: dict[str, int]) -> dict[str, int]:
        for environment, count in value.items():
            if count < 0:
                raise ValueError(f"suspended capacity for {environment} must be >= 0")
        return value

    @model_validator(mode="after")
    def _overrides_consistent(self) -> "SessionConfig":
        for environment, override in self.scaling.items():
            capacity = override.apply_to(DEFAULT_CAPACITY)
            if not capacity.is_consistent():
                raise ValueError(
                    f"Capacity for {environment} violates min <= desired <= max: {capacity}"
                )
        return self

    @classmethod
    def load(cls, data: dict) -> "SessionConfig":
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid session configuration: {exc}") from exc

    @classmethod
    def load_json(cls, raw: str | bytes) -> "SessionConfig":
        try:
            return cls.model_validate_json(raw)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid session configuration: {exc}") from exc

    def host_for(self, name: str) -> str:
        return f"{name}.repo.vpc.{self.dns_zone}"

    def suspended_capacity_for(self, environment: str) -> int:
        return self.suspended.get(environment, 0)
