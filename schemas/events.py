from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ClientEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


class JoinRoomEvent(ClientEvent):
    room_id: str = Field(alias="roomId", min_length=1)
    user_id: Optional[str] = Field(default=None, alias="userId")
    user: Optional[str] = None


class ChatMessageEvent(ClientEvent):
    room_id: str = Field(alias="roomId", min_length=1)
    user: Optional[str] = None
    text: str = Field(min_length=1)
