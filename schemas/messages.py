from pydantic import BaseModel, Field, TypeAdapter
from typing import Annotated, Literal, Optional, Union


# Negotiation payloads, carried inside a Peer envelope

class Offer(BaseModel):
    type: Literal["offer"] = "offer"
    sdp: str

class Answer(BaseModel):
    type: Literal["answer"] = "answer"
    sdp: str

class Candidate(BaseModel):
    type: Literal["candidate"] = "candidate"
    candidate: str
    sdp_mid: Optional[str] = None
    sdp_m_line_index: Optional[int] = None

class Chat(BaseModel):
    type: Literal["chat"] = "chat"
    message: str

NegotiationMessage = Annotated[Union[Offer, Answer, Candidate, Chat], Field(discriminator="type")]


# Directory -> client

class You(BaseModel):
    type: Literal["you"] = "you"
    url: str

class Add(BaseModel):
    type: Literal["add"] = "add"
    url: str

class Remove(BaseModel):
    type: Literal["remove"] = "remove"
    url: str

class Peer(BaseModel):
    type: Literal["peer"] = "peer"
    url: str
    message: NegotiationMessage

DirectoryMessage = Annotated[Union[You, Add, Remove, Peer], Field(discriminator="type")]


# Client -> directory, forwarded by the push bridge to POST /frame

class RoomFrame(BaseModel):
    type: Literal["room"] = "room"
    name: str

class PingFrame(BaseModel):
    type: Literal["ping"] = "ping"

Frame = Annotated[Union[RoomFrame, PingFrame], Field(discriminator="type")]


class RelayRequest(BaseModel):
    """Body of POST /peer: forward `message` to `url` on behalf of the caller."""
    url: str
    message: NegotiationMessage


directory_message_adapter = TypeAdapter(DirectoryMessage)
frame_adapter = TypeAdapter(Frame)


def encode(message: BaseModel) -> str:
    return message.model_dump_json()

def decode_directory_message(data) -> Union[You, Add, Remove, Peer]:
    """Parse a JSON frame pushed by the directory. Raises pydantic.ValidationError."""
    return directory_message_adapter.validate_json(data)

def decode_frame(data) -> Union[RoomFrame, PingFrame]:
    return frame_adapter.validate_json(data)
