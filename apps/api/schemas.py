from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime, date
from uuid import UUID
from typing import Any, Dict, List, Literal, Optional

DocTypeName = Literal["day", "week", "month", "quarter"]


class CamelModel(BaseModel):
    """Wire models use camelCase on the wire and snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# --- Documents ---

class DocumentResponse(CamelModel):
    id: UUID
    user_id: UUID
    doc_type: str
    doc_key: str
    schema_version: int
    status: str
    content: Dict[str, Any]
    client_updated_at: datetime
    server_received_at: datetime
    device_id: Optional[str] = None


class DocumentUpdate(CamelModel):
    content: Dict[str, Any]
    client_updated_at: str
    device_id: Optional[str] = Field(default=None, min_length=1)


class ReflectionPayload(CamelModel):
    """Completeness is enforced by the close flow, which reports the missing fields."""
    went_well: str = ""
    why_went_well: str = ""
    repeat_in_future: str = ""
    went_wrong: str = ""
    why_went_wrong: str = ""
    do_differently: str = ""


class CloseDayRequest(CamelModel):
    reflection: ReflectionPayload


class DayStateResponse(CamelModel):
    date_key: str
    status: str
    exists: bool
    available: bool
    editable: bool
    locked: bool


# --- Sync ---

class SyncMutation(CamelModel):
    id: str = Field(min_length=1)
    doc_type: DocTypeName
    doc_key: str = Field(min_length=1)
    content: Dict[str, Any] = Field(default_factory=dict)
    client_updated_at: str
    device_id: str = Field(min_length=1)
    operation: Literal["upsert", "delete"]


class SyncPushRequest(CamelModel):
    mutations: List[SyncMutation]


class SyncFullRequest(CamelModel):
    push: SyncPushRequest
    pull_since: str


# --- Accountability ---

class StatusSummaryResponse(CamelModel):
    date: date
    day_closed: bool
    one_thing_done: bool
    reflection_present: bool
