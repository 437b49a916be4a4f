"""
solloc - Source location tracking for deployed EVM bytecode
"""

__version__ = "0.1.0"

# Main entry point
from .cli.main import main

# Core components
from .core import (
    SourceLocationTracker,
    CodeManager,
    CodeInfo,
    ContractDescriptor,
    ContractSet,
    load_combined_json,
    TransactionTracer,
    TransactionTrace,
    TraceStep,
)

# Parsers
from .parsers import (
    JumpType,
    SourceLocation,
    SourceMappingDecoder,
)

# Utilities
from .utils import (
    SolLocError,
    AddressBytecodeUnavailable,
    SourceMapNotFound,
    InstructionIndexNotFound,
    DecodeFailure,
    RPCConnectionError,
    setup_logging,
)

__all__ = [
    # Version
    '__version__',
    # Main
    'main',
    # Core
    'SourceLocationTracker',
    'CodeManager',
    'CodeInfo',
    'ContractDescriptor',
    'ContractSet',
    'load_combined_json',
    'TransactionTracer',
    'TransactionTrace',
    'TraceStep',
    # Parsers
    'JumpType',
    'SourceLocation',
    'SourceMappingDecoder',
    # Utils
    'SolLocError',
    'AddressBytecodeUnavailable',
    'SourceMapNotFound',
    'InstructionIndexNotFound',
    'DecodeFailure',
    'RPCConnectionError',
    'setup_logging',
]
