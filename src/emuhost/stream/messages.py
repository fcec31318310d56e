"""Structured messages emitted by the emulator on stdout.

The emulator prints one JSON object per line. Two shapes are known::

    {"type": "step", "REGISTERS": {"PC": {"int": "0", "bits": "0000...", "instr": "LOAD M(5)"}, ...}}
    {"type": "dump", "RAM": {"range": {"start": 0, "end": 9}, "memory": [{"addr": "0", "raw": "...", "signed": "12", "instr": "..."}]}}

Anything else that parses (an unknown ``type``, no ``type`` at all, or a
known type with fields that do not validate) is forwarded as an
``OpaqueMessage`` carrying the raw object.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

logger = logging.getLogger(__name__)

_VALUE_CONFIG = ConfigDict(
    frozen=True,
    populate_by_name=True,
    coerce_numbers_to_str=True,
)


class RegisterValue(BaseModel):
    """One register as reported by a step."""

    model_config = _VALUE_CONFIG

    integer_text: str = Field(alias="int")
    bits_text: str = Field(alias="bits")
    instruction_text: str | None = Field(default=None, alias="instr")


class MemoryCell(BaseModel):
    """One memory word from a dump."""

    model_config = _VALUE_CONFIG

    address: str = Field(alias="addr")
    raw_bits: str = Field(alias="raw")
    signed_value: str = Field(alias="signed")
    instruction_text: str | None = Field(default=None, alias="instr")


class MemoryRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: int
    end: int


class StepMessage(BaseModel):
    """Register state after executing one instruction."""

    model_config = _VALUE_CONFIG

    type: Literal["step"] = "step"
    registers: dict[str, RegisterValue] = Field(
        default_factory=dict, alias="REGISTERS"
    )
    payload: dict[str, Any] = Field(default_factory=dict, repr=False)


class DumpMessage(BaseModel):
    """A contiguous slice of memory."""

    model_config = _VALUE_CONFIG

    type: Literal["dump"] = "dump"
    range: MemoryRange | None = None
    cells: tuple[MemoryCell, ...] = ()
    payload: dict[str, Any] = Field(default_factory=dict, repr=False)

    @model_validator(mode="before")
    @classmethod
    def _unwrap_ram(cls, data: Any) -> Any:
        # Wire format nests both fields under "RAM"
        if isinstance(data, dict) and "RAM" in data:
            ram = data["RAM"] or {}
            if not isinstance(ram, dict):
                raise ValueError("RAM must be an object")
            data = {k: v for k, v in data.items() if k != "RAM"}
            data["range"] = ram.get("range")
            data["cells"] = ram.get("memory") or ()
        return data


class OpaqueMessage(BaseModel):
    """A structured line this layer does not model. Passed through as-is."""

    model_config = ConfigDict(frozen=True)

    type: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)


Message = StepMessage | DumpMessage | OpaqueMessage

_MESSAGE_TYPES: dict[str, type[StepMessage] | type[DumpMessage]] = {
    "step": StepMessage,
    "dump": DumpMessage,
}


def parse_message(obj: Any) -> Message:
    """Map a decoded JSON value onto the message union. Never raises."""
    if not isinstance(obj, dict):
        return OpaqueMessage(payload={"value": obj})

    kind = obj.get("type")
    if not isinstance(kind, str):
        return OpaqueMessage(payload=obj)

    model = _MESSAGE_TYPES.get(kind)
    if model is not None:
        try:
            return model.model_validate({**obj, "payload": obj})
        except ValidationError as e:
            logger.debug(
                "Message of type %r did not validate, forwarding opaque: %s",
                kind,
                e,
            )
    return OpaqueMessage(type=kind, payload=obj)
