"""
Pydantic models for the stored envelope, change events and API boundaries.
Why: contract-first; a record that does not validate is a miss, not a crash.
"""

from typing import Any, List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

EventType = Literal["insert", "update", "delete"]


class CacheEntry(BaseModel):
    key: str
    payload: Any = None
    written_at: int = Field(..., ge=0, description="milliseconds since epoch")

    def is_fresh(self, now_ms: int, ttl_ms: int) -> bool:
        return now_ms - self.written_at < ttl_ms


class StoredEnvelope(BaseModel):
    """Exact shape persisted under each key: {"payload": ..., "writtenAt": ms}."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    payload: Any = None
    written_at: int = Field(..., alias="writtenAt", ge=0)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @model_validator(mode="before")
    @classmethod
    def _require_payload(cls, data: Any) -> Any:
        # Missing payload is a corrupt record, not an empty one.
        if isinstance(data, dict) and "payload" not in data:
            raise ValueError("envelope has no payload")
        return data


class ChangeEvent(BaseModel):
    """Realtime notification for one mutated table.

    Accepts both ``{"table", "event_type"}`` and the hosted backend's
    database-webhook body (``{"table", "type": "INSERT", "record", ...}``).
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    table: str = Field(..., min_length=1)
    event_type: EventType = Field(..., alias="type")
    schema_name: str = Field(default="public", alias="schema")

    @field_validator("event_type", mode="before")
    @classmethod
    def _lower(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value


class InvalidationResult(BaseModel):
    removed: int
    keys: List[str] = []


class ReferenceResponse(BaseModel):
    resource: str
    key: str
    data: Any
    cache_hit: bool


class RefreshRequestResult(BaseModel):
    domain: str
    scheduled: bool = True
