"""Tests for emuhost.stream.messages (message union and parse_message)."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from emuhost.stream.messages import (
    DumpMessage,
    MemoryCell,
    OpaqueMessage,
    RegisterValue,
    StepMessage,
    parse_message,
)

STEP = {
    "type": "step",
    "REGISTERS": {
        "PC": {"int": "1", "bits": "000000000001", "instr": "LOAD M(5)"},
        "AC": {"int": "-3", "bits": "1000000000000000000000000000000000011"},
    },
}

DUMP = {
    "type": "dump",
    "RAM": {
        "range": {"start": 0, "end": 1},
        "memory": [
            {"addr": "0", "raw": "0000", "signed": "0", "instr": "HALT"},
            {"addr": "1", "raw": "0101", "signed": "5"},
        ],
    },
}


class TestStepMessage:
    def test_parse(self) -> None:
        msg = parse_message(STEP)
        assert isinstance(msg, StepMessage)
        assert msg.type == "step"
        assert list(msg.registers) == ["PC", "AC"]
        pc = msg.registers["PC"]
        assert pc.integer_text == "1"
        assert pc.bits_text == "000000000001"
        assert pc.instruction_text == "LOAD M(5)"
        assert msg.registers["AC"].instruction_text is None

    def test_payload_kept(self) -> None:
        msg = parse_message(STEP)
        assert msg.payload == STEP

    def test_missing_registers_is_empty(self) -> None:
        msg = parse_message({"type": "step"})
        assert isinstance(msg, StepMessage)
        assert msg.registers == {}

    def test_numbers_coerced_to_text(self) -> None:
        msg = parse_message(
            {"type": "step", "REGISTERS": {"PC": {"int": 7, "bits": 111}}}
        )
        assert isinstance(msg, StepMessage)
        assert msg.registers["PC"].integer_text == "7"
        assert msg.registers["PC"].bits_text == "111"

    def test_immutable(self) -> None:
        msg = parse_message(STEP)
        with pytest.raises(ValidationError):
            msg.type = "dump"  # type: ignore[misc]


class TestDumpMessage:
    def test_parse(self) -> None:
        msg = parse_message(DUMP)
        assert isinstance(msg, DumpMessage)
        assert msg.range is not None
        assert (msg.range.start, msg.range.end) == (0, 1)
        assert len(msg.cells) == 2
        first, second = msg.cells
        assert first.address == "0"
        assert first.raw_bits == "0000"
        assert first.signed_value == "0"
        assert first.instruction_text == "HALT"
        assert second.instruction_text is None

    def test_cells_keep_order(self) -> None:
        msg = parse_message(DUMP)
        assert isinstance(msg, DumpMessage)
        assert [c.address for c in msg.cells] == ["0", "1"]

    def test_missing_ram(self) -> None:
        msg = parse_message({"type": "dump"})
        assert isinstance(msg, DumpMessage)
        assert msg.range is None
        assert msg.cells == ()


class TestOpaqueMessages:
    def test_unknown_type_forwarded(self) -> None:
        obj = {"type": "breakpoint", "addr": 12}
        msg = parse_message(obj)
        assert isinstance(msg, OpaqueMessage)
        assert msg.type == "breakpoint"
        assert msg.payload == obj

    def test_missing_type(self) -> None:
        msg = parse_message({"hello": "world"})
        assert isinstance(msg, OpaqueMessage)
        assert msg.type is None

    def test_non_string_type(self) -> None:
        msg = parse_message({"type": 3})
        assert isinstance(msg, OpaqueMessage)
        assert msg.type is None

    def test_invalid_known_type_degrades(self) -> None:
        obj = {"type": "step", "REGISTERS": "not a mapping"}
        msg = parse_message(obj)
        assert isinstance(msg, OpaqueMessage)
        assert msg.type == "step"
        assert msg.payload == obj

    def test_bad_ram_degrades(self) -> None:
        msg = parse_message({"type": "dump", "RAM": [1, 2]})
        assert isinstance(msg, OpaqueMessage)

    def test_non_object(self) -> None:
        msg = parse_message([1, 2, 3])
        assert isinstance(msg, OpaqueMessage)
        assert msg.payload == {"value": [1, 2, 3]}


class TestValueObjects:
    def test_register_by_field_name(self) -> None:
        reg = RegisterValue(integer_text="1", bits_text="01")
        assert reg.instruction_text is None

    def test_memory_cell_by_alias(self) -> None:
        cell = MemoryCell.model_validate({"addr": "4", "raw": "1", "signed": "-1"})
        assert cell.signed_value == "-1"
