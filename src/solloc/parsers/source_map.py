"""
Solidity source map decoder.

Format specification: https://docs.soliditylang.org/en/latest/internals/source_mappings.html

Each srcmap entry is `s:l:f:j:m` where:
- s = byte offset in source file
- l = length in bytes
- f = source file index (-1 = no source file)
- j = jump type (i=into function, o=out of function, -=regular)
- m = modifier depth

Entries are separated by `;`, one entry per instruction (not per byte).
Empty fields inherit from the previous entry.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, List, Tuple, Union

from solloc.utils.exceptions import DecodeFailure
from solloc.utils.logging import get_logger

logger = get_logger('decoder')


# PUSH1 (0x60) .. PUSH32 (0x7f) carry 1..32 immediate bytes.
# PUSH0 (0x5f) has none and is an ordinary single-byte instruction.
PUSH_OPCODES = {opcode: opcode - 0x5f for opcode in range(0x60, 0x80)}

NO_FILE = -1


class JumpType(str, Enum):
    """Jump classification of an instruction."""
    INTO_FUNCTION = "i"
    OUT_OF_FUNCTION = "o"
    NONE = "-"


@dataclass(frozen=True)
class SourceLocation:
    """Decoded source range for one instruction."""
    start: int
    length: int
    file_index: int
    jump: JumpType = JumpType.NONE

    def has_file(self) -> bool:
        return self.file_index != NO_FILE

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["jump"] = self.jump.value
        return data


class SourceMappingDecoder:
    """Decodes compressed solc source maps."""

    def decode_at(self, index: int, srcmap: str) -> SourceLocation:
        """
        Decode the entry of ``srcmap`` belonging to instruction ``index``.

        An index past the last entry resolves to the last entry, since solc
        omits trailing entries identical to their predecessor.

        Raises:
            DecodeFailure: negative index, empty map or malformed entry
        """
        if not isinstance(index, int) or index < 0:
            raise DecodeFailure(f"Invalid source map index: {index!r}", index=index)
        if not srcmap:
            raise DecodeFailure("Empty source map", index=index)

        entries = srcmap.split(";")
        last = min(index, len(entries) - 1)

        start, length, file_index, jump = 0, 0, NO_FILE, JumpType.NONE
        for position in range(last + 1):
            start, length, file_index, jump = self._apply_entry(
                entries[position], position, (start, length, file_index, jump)
            )

        logger.debug(f"Decoded srcmap entry {index}: {start}:{length}:{file_index}:{jump.value}")
        return SourceLocation(start=start, length=length, file_index=file_index, jump=jump)

    def decompress_all(self, srcmap: str) -> List[SourceLocation]:
        """Decode every entry of ``srcmap`` in a single pass."""
        if not srcmap:
            return []

        locations = []
        current = (0, 0, NO_FILE, JumpType.NONE)
        for position, entry in enumerate(srcmap.split(";")):
            current = self._apply_entry(entry, position, current)
            locations.append(SourceLocation(*current))
        return locations

    @staticmethod
    def _apply_entry(
        entry: str,
        position: int,
        previous: Tuple[int, int, int, JumpType]
    ) -> Tuple[int, int, int, JumpType]:
        """Overlay the fields present in ``entry`` on ``previous``."""
        if not entry:
            return previous

        fields = entry.split(":")
        start, length, file_index, jump = previous
        try:
            if len(fields) > 0 and fields[0].strip():
                start = int(fields[0])
            if len(fields) > 1 and fields[1].strip():
                length = int(fields[1])
            if len(fields) > 2 and fields[2].strip():
                file_index = int(fields[2])
            if len(fields) > 3 and fields[3].strip():
                jump = JumpType(fields[3].strip())
            # fields[4] is the modifier depth, not part of a location
            if len(fields) > 4 and fields[4].strip():
                int(fields[4])
        except ValueError as e:
            raise DecodeFailure(
                f"Malformed source map entry {position} '{entry}': {e}",
                index=position
            ) from e

        if start < 0 or length < 0:
            raise DecodeFailure(
                f"Negative offset or length in source map entry {position} '{entry}'",
                index=position
            )
        return start, length, file_index, jump


def build_pc_to_instruction_map(bytecode: Union[str, bytes]) -> Dict[int, int]:
    """
    Build mapping from PC (bytecode offset) to instruction index.

    PUSH opcodes are followed by N bytes of data. These data bytes are NOT
    separate instructions: PUSH2 at pc 0 is instruction 0 and the next
    opcode at pc 3 is instruction 1.
    """
    if isinstance(bytecode, str):
        bytecode = bytes.fromhex(bytecode[2:] if bytecode.startswith("0x") else bytecode)

    pc_to_idx = {}
    pc = 0
    instr_idx = 0
    while pc < len(bytecode):
        pc_to_idx[pc] = instr_idx
        pc += 1 + PUSH_OPCODES.get(bytecode[pc], 0)
        instr_idx += 1
    return pc_to_idx


def offset_to_line_col(source: str, offset: int) -> Tuple[int, int]:
    """
    Convert a byte offset into a 1-based (line, column) pair.

    Offsets are counted in UTF-8 bytes, as solc counts them. Offsets past the
    end of the source map to the position just after the last character.
    """
    encoded = source.encode("utf-8")
    prefix = encoded[:max(0, offset)]
    line = prefix.count(b"\n") + 1
    line_start = prefix.rfind(b"\n") + 1
    return line, len(prefix) - line_start + 1
