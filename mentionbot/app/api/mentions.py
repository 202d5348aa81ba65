"""Mention and message-deletion ingress endpoints.

The messaging-platform gateway posts every message that mentions the bot and
delivers whatever reply text comes back. Deleted messages are posted too so
they end up in the audit log.
"""

import hmac
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from mentionbot.app.middleware.request_id import get_request_id
from mentionbot.app.services.mention_handler import (
    ChannelMessage,
    MentionEvent,
    MentionHandler,
    MessageDeletion,
)

router = APIRouter()


class ChannelMessageModel(BaseModel):
    """Prior channel message sent as context."""
    author_id: str
    author_name: str = ""
    content: str = ""


class MentionRequest(BaseModel):
    """Inbound message event."""
    message_id: str = Field(..., min_length=1)
    channel_id: str = Field(..., min_length=1)
    author_id: str = Field(..., min_length=1)
    author_name: str = Field(..., min_length=1)
    author_is_bot: bool = False
    content: str = ""
    mentions: List[str] = Field(default_factory=list)
    history: List[ChannelMessageModel] = Field(default_factory=list, max_length=100)

    def to_event(self) -> MentionEvent:
        return MentionEvent(
            message_id=self.message_id,
            channel_id=self.channel_id,
            author_id=self.author_id,
            author_name=self.author_name,
            content=self.content,
            author_is_bot=self.author_is_bot,
            mentions=list(self.mentions),
            history=[
                ChannelMessage(
                    author_id=m.author_id,
                    author_name=m.author_name,
                    content=m.content,
                )
                for m in self.history
            ],
        )


class MentionResponse(BaseModel):
    """Reply to deliver; ``reply`` is null when the bot stays silent."""
    reply: Optional[str] = None
    rate_limited: bool = False
    retry_after: float = 0.0
    error_category: Optional[str] = None
    tool_invoked: bool = False


def get_mention_handler(request: Request) -> MentionHandler:
    return request.app.state.mention_handler


def require_ingress_token(request: Request) -> None:
    """Check the bearer token when an ingress token is configured.

    Raises:
        HTTPException: 401 if the token is missing or wrong
    """
    expected = request.app.state.ingress_token
    if not expected:
        return
    auth = request.headers.get("Authorization", "")
    token = auth[7:].strip() if auth.startswith("Bearer ") else ""
    if not token or not hmac.compare_digest(token.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Invalid or missing ingress token")


@router.post(
    "/v1/mentions",
    response_model=MentionResponse,
    dependencies=[Depends(require_ingress_token)],
)
async def handle_mention(
    body: MentionRequest,
    request: Request,
    handler: MentionHandler = Depends(get_mention_handler),
) -> MentionResponse:
    """Handle one inbound message and return the reply to post."""
    reply = await handler.handle(body.to_event(), request_id=get_request_id(request))
    return MentionResponse(
        reply=reply.text,
        rate_limited=reply.rate_limited,
        retry_after=reply.retry_after,
        error_category=reply.error_category,
        tool_invoked=reply.tool_invoked,
    )


class MessageDeletionRequest(BaseModel):
    """Deleted message event; author fields are absent when the platform had it uncached."""
    message_id: str = Field(..., min_length=1)
    channel_id: str = Field(..., min_length=1)
    author_id: Optional[str] = None
    author_name: Optional[str] = None
    author_is_bot: bool = False
    content: str = ""


class MessageDeletionResponse(BaseModel):
    logged: bool


@router.post(
    "/v1/message-deletions",
    response_model=MessageDeletionResponse,
    dependencies=[Depends(require_ingress_token)],
)
async def handle_message_deletion(
    body: MessageDeletionRequest,
    request: Request,
    handler: MentionHandler = Depends(get_mention_handler),
) -> MessageDeletionResponse:
    """Record a deleted message in the audit log."""
    deletion = MessageDeletion(
        message_id=body.message_id,
        channel_id=body.channel_id,
        author_id=body.author_id,
        author_name=body.author_name,
        author_is_bot=body.author_is_bot,
        content=body.content,
    )
    logged = handler.record_deletion(deletion, request_id=get_request_id(request))
    return MessageDeletionResponse(logged=logged)
