"""Subscription model."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator


class SubscriptionKind(StrEnum):
    COUNTY = "county"
    WATERBODY = "waterbody"


class Subscription(BaseModel):
    """Interest in new stockings for one county or one waterbody.

    Subscriptions are never removed; turning one off flips ``enabled``.
    """

    model_config = ConfigDict(frozen=True)

    kind: SubscriptionKind
    value: str
    enabled: bool = True

    @field_validator("value")
    @classmethod
    def _normalize_value(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("subscription value must be non-empty")
        return text

    @property
    def key(self) -> tuple[SubscriptionKind, str]:
        return (self.kind, self.value)
