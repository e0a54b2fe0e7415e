"""Messages exchanged on the live dashboard socket."""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter

from ezhil.schemas.dashboard import DashboardResponse, SummaryResponse

FeedView = Literal["dashboard", "summary"]


# Client -> server


class SubscribeMessage(BaseModel):
    """Choose which snapshot to receive."""

    type: Literal["subscribe"] = "subscribe"
    view: FeedView = "dashboard"


class PingMessage(BaseModel):
    type: Literal["ping"] = "ping"


ClientMessage = Annotated[SubscribeMessage | PingMessage, Field(discriminator="type")]

client_message_adapter: TypeAdapter[SubscribeMessage | PingMessage] = TypeAdapter(ClientMessage)


# Server -> client


class DashboardUpdateMessage(BaseModel):
    """A fully recomputed snapshot.

    ``sequence`` increases with every publish; clients keep only the newest.
    """

    type: Literal["dashboard_update"] = "dashboard_update"
    view: FeedView
    sequence: int
    data: DashboardResponse | SummaryResponse
    timestamp: datetime


class PongMessage(BaseModel):
    type: Literal["pong"] = "pong"


class ErrorMessage(BaseModel):
    type: Literal["error"] = "error"
    message: str
