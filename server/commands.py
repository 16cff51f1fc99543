"""Inbound WebSocket commands.

Every client frame is a JSON object with a ``type`` field. Frames are parsed
into one of the models below; anything that fails to parse is malformed input
and is dropped by the handler layer.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from game import Color


class _Command(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class JoinCommand(_Command):
    """Take (or retake, by name) a seat in a room, creating the room if needed."""

    type: Literal["join"]
    room_id: Optional[str] = Field(default=None, alias="roomId")
    name: Optional[str] = None


class PlayCommand(_Command):
    type: Literal["play"]
    card_id: str = Field(alias="cardId")
    chosen_color: Optional[Color] = Field(default=None, alias="chosenColor")


class DrawCommand(_Command):
    type: Literal["draw"]


class DeclareCommand(_Command):
    """Call UNO while holding one card."""

    type: Literal["uno", "declare"]


class CalloutCommand(_Command):
    type: Literal["callout"]


class ChallengeCommand(_Command):
    type: Literal["challenge"]


class NextRoundCommand(_Command):
    type: Literal["next-round", "advance-round"]


class ResetCommand(_Command):
    """Zero both scores and start a new match."""

    type: Literal["reset", "full-reset"]


Command = Annotated[
    Union[
        JoinCommand,
        PlayCommand,
        DrawCommand,
        DeclareCommand,
        CalloutCommand,
        ChallengeCommand,
        NextRoundCommand,
        ResetCommand,
    ],
    Field(discriminator="type"),
]

_command_adapter = TypeAdapter(Command)


def parse_command(raw: Union[str, bytes]) -> Command:
    """
    Parse a raw WebSocket frame into a command.

    Raises:
        pydantic.ValidationError: The frame isn't JSON, has an unknown type,
            or is missing required fields.
    """
    return _command_adapter.validate_json(raw)
