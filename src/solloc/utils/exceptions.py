"""
Custom exceptions for solloc.

Every failure a source-location query can end with is a subclass of
:class:`SolLocError`, so callers can catch the whole family at once and the
CLI can render any of them as text or JSON.
"""

import json
from typing import Any, Dict, Optional


class SolLocError(Exception):
    """
    Base exception for all solloc errors.

    Attributes:
        message: Human-readable error message
        details: Additional context as key-value pairs
        error_code: Error code for programmatic handling
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        self.message = message
        self.details = details or {}
        self.error_code = error_code or self.__class__.__name__
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "error": True,
            "type": self.error_code,
            "message": self.message,
            **self.details
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


# ============================================================================
# Source location errors
# ============================================================================

class AddressBytecodeUnavailable(SolLocError):
    """Raised when no bytecode can be fetched for an address."""

    def __init__(self, address: str, reason: Optional[str] = None, **kwargs):
        message = f"No bytecode available for address {address}"
        if reason:
            message += f": {reason}"
        details = {"address": address}
        details.update(kwargs)
        super().__init__(message, details, "AddressBytecodeUnavailable")


class SourceMapNotFound(SolLocError):
    """Raised when no known contract's bytecode prefixes the deployed code."""

    def __init__(self, address: str, **kwargs):
        details = {"address": address}
        details.update(kwargs)
        super().__init__(
            f"No srcmap associated with the code at {address}",
            details,
            "SourceMapNotFound"
        )


class InstructionIndexNotFound(SolLocError):
    """Raised when a trace step cannot be translated to an instruction index."""

    def __init__(self, address: str, step_index: int, reason: Optional[str] = None, **kwargs):
        message = f"No instruction index for trace step {step_index} at {address}"
        if reason:
            message += f": {reason}"
        details = {"address": address, "step_index": step_index}
        details.update(kwargs)
        super().__init__(message, details, "InstructionIndexNotFound")


class DecodeFailure(SolLocError):
    """Raised when a source map cannot be decoded at the requested index."""

    def __init__(self, message: str, index: Optional[int] = None, **kwargs):
        details = {"index": index} if index is not None else {}
        details.update(kwargs)
        super().__init__(message, details, "DecodeFailure")


# ============================================================================
# Chain access errors
# ============================================================================

class RPCConnectionError(SolLocError):
    """Raised when the RPC endpoint cannot be reached."""

    def __init__(self, message: str, rpc_url: Optional[str] = None, **kwargs):
        details = {"rpc_url": rpc_url} if rpc_url else {}
        details.update(kwargs)
        super().__init__(message, details, "RPCConnectionError")


class TransactionNotFoundError(SolLocError):
    """Raised when a transaction is unknown to the node."""

    def __init__(self, tx_hash: str, **kwargs):
        details = {"tx_hash": tx_hash}
        details.update(kwargs)
        super().__init__(
            f"Transaction not found: {tx_hash}",
            details,
            "TransactionNotFoundError"
        )


class DebugTraceUnavailableError(SolLocError):
    """Raised when debug_traceTransaction is not served by the node."""

    def __init__(self, tx_hash: str, reason: Optional[str] = None, **kwargs):
        message = f"debug_traceTransaction unavailable for {tx_hash}"
        if reason:
            message += f": {reason}"
        details = {"tx_hash": tx_hash}
        details.update(kwargs)
        super().__init__(message, details, "DebugTraceUnavailable")


# ============================================================================
# Input errors
# ============================================================================

class ContractsFileError(SolLocError):
    """Raised when a combined-json contracts file cannot be loaded."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        details = {"path": path} if path else {}
        details.update(kwargs)
        super().__init__(message, details, "ContractsFileError")


# ============================================================================
# Error Formatting Utilities
# ============================================================================

def format_error(e: Exception, json_mode: bool = False) -> str:
    """
    Format an exception for display.

    Args:
        e: The exception to format
        json_mode: If True, output as JSON; otherwise use colored text

    Returns:
        Formatted error string
    """
    from solloc.utils.colors import error

    if isinstance(e, SolLocError):
        if json_mode:
            return e.to_json()
        return error(e.message)
    if json_mode:
        return json.dumps(format_error_json(str(e), type(e).__name__), indent=2)
    return error(str(e))


def format_error_json(
    message: str,
    error_type: str = "Error",
    **kwargs
) -> Dict[str, Any]:
    """Create a standardized error JSON structure."""
    return {
        "error": True,
        "type": error_type,
        "message": message,
        **kwargs
    }
