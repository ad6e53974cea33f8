# campus_booking/schemas/store.py
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional
import enum


class DataType(str, enum.Enum):
    """One whole-blob collection per domain."""
    ROOMS = "rooms"
    EQUIPMENT = "equipment"

    @property
    def storage_key(self) -> str:
        return f"{self.value}_data"


class WriteResult(BaseModel):
    success: bool = True


class NotifyRequest(BaseModel):
    message: str = ""


class LoginRequest(BaseModel):
    password: str = ""


class LoginResponse(BaseModel):
    success: bool


class ServiceStatus(BaseModel):
    """Operator diagnostics: which bindings and secrets are configured."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    line_api_token: bool
    room_kv_binding: bool
    equipment_kv_binding: bool
    recipient_id_set: bool


# --- Chat platform webhook payload (only the parts the report bot reads) ---

class Mentionee(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    is_self: bool = False


class Mention(BaseModel):
    mentionees: List[Mentionee] = Field(default_factory=list)


class WebhookMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str
    text: Optional[str] = None
    mention: Optional[Mention] = None


class WebhookSource(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    type: str
    user_id: Optional[str] = None
    group_id: Optional[str] = None


class WebhookEvent(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    type: str
    reply_token: Optional[str] = None
    source: Optional[WebhookSource] = None
    message: Optional[WebhookMessage] = None


class WebhookPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    events: List[WebhookEvent] = Field(default_factory=list)
