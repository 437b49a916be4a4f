"""
Utilities module for solloc.

Provides exception types, logging setup and terminal colors.
"""

from .exceptions import (
    SolLocError,
    AddressBytecodeUnavailable,
    SourceMapNotFound,
    InstructionIndexNotFound,
    DecodeFailure,
    RPCConnectionError,
    TransactionNotFoundError,
    DebugTraceUnavailableError,
    ContractsFileError,
    format_error,
    format_error_json,
)
from .logging import TRACE, setup_logging, get_logger, logger
from .colors import (
    Colors,
    SUPPORTS_COLOR,
    error, warning, info,
    address, number,
)

__all__ = [
    # Exceptions
    'SolLocError',
    'AddressBytecodeUnavailable',
    'SourceMapNotFound',
    'InstructionIndexNotFound',
    'DecodeFailure',
    'RPCConnectionError',
    'TransactionNotFoundError',
    'DebugTraceUnavailableError',
    'ContractsFileError',
    'format_error',
    'format_error_json',
    # Logging
    'TRACE',
    'setup_logging',
    'get_logger',
    'logger',
    # Colors
    'Colors',
    'SUPPORTS_COLOR',
    'error', 'warning', 'info',
    'address', 'number',
]
