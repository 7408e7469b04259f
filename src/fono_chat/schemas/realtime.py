# src/fono_chat/schemas/realtime.py
"""Schemas for realtime channel auth and typing notifications."""

from pydantic import BaseModel, ConfigDict, Field


class ChannelAuthRequest(BaseModel):
    """Body posted by the Pusher client library when subscribing."""

    socket_id: str = Field(..., description="Connection id assigned by Pusher")
    channel_name: str = Field(..., description="Channel the client wants to join")


class TypingNotification(BaseModel):
    action: str | None = None
    target_user_id: str | None = Field(None, alias="targetUserId")

    model_config = ConfigDict(populate_by_name=True)
