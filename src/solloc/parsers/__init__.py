"""
Parsers module for solloc.

Decoding of solc compressed source maps and EVM bytecode layout.
"""

from .source_map import (
    PUSH_OPCODES,
    NO_FILE,
    JumpType,
    SourceLocation,
    SourceMappingDecoder,
    build_pc_to_instruction_map,
    offset_to_line_col,
)

__all__ = [
    'PUSH_OPCODES',
    'NO_FILE',
    'JumpType',
    'SourceLocation',
    'SourceMappingDecoder',
    'build_pc_to_instruction_map',
    'offset_to_line_col',
]
