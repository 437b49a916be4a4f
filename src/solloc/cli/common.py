"""
Common utilities for CLI commands.

Shared connection setup, error rendering and output helpers.
"""

import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from solloc.core.code_manager import CodeManager
from solloc.core.contracts import ContractSet
from solloc.core.transaction_tracer import DEFAULT_RPC_URL, TransactionTracer
from solloc.parsers.source_map import SourceLocation, offset_to_line_col
from solloc.utils.exceptions import format_error
from solloc.utils.logging import logger, setup_logging


def resolve_rpc_url(args: Any) -> str:
    """--rpc flag, then SOLLOC_RPC_URL, then the local default."""
    return getattr(args, 'rpc', None) or os.environ.get('SOLLOC_RPC_URL') or DEFAULT_RPC_URL


def configure_logging(args: Any) -> None:
    setup_logging(
        debug=getattr(args, 'debug', False),
        verbose=getattr(args, 'verbose', False),
        log_file=getattr(args, 'log_file', None),
    )


def create_tracer(rpc_url: str) -> TransactionTracer:
    """
    Create and return a TransactionTracer instance.

    Raises:
        RPCConnectionError: If connection to RPC fails
    """
    logger.debug(f"Connecting to RPC: {rpc_url}")
    return TransactionTracer(rpc_url)


def create_code_manager(args: Any, address: str) -> CodeManager:
    """
    Build the code provider for a command.

    ``--code`` is registered as the code at ``address``. With ``--code``
    alone no RPC connection is made; otherwise the node is
    contacted and, when ``--tx`` is given, the transaction's trace is loaded.
    """
    code = getattr(args, 'code', None)
    tx_hash = getattr(args, 'tx', None)

    if code and not tx_hash:
        manager = CodeManager()
        manager.register_code(address, code)
        return manager

    tracer = create_tracer(resolve_rpc_url(args))
    manager = CodeManager(tracer.w3)
    if tx_hash:
        manager.load_trace(tracer.trace_transaction(tx_hash))
    if code:
        manager.register_code(address, code)
    return manager


def handle_command_error(
    e: Exception,
    json_mode: bool = False,
    exit_code: int = 1
) -> int:
    """
    Print an error uniformly and return the exit code.
    """
    error_output = format_error(e, json_mode)
    if json_mode:
        print(error_output)
    else:
        print(error_output, file=sys.stderr)
    return exit_code


def describe_location(
    location: SourceLocation,
    contracts: Optional[ContractSet] = None,
    source_root: Optional[str] = None
) -> Dict[str, Any]:
    """
    JSON-ready view of a location, with the source path and line/column
    when the source list and source file are available.
    """
    result = location.to_dict()
    if contracts is None or not location.has_file():
        return result

    path = contracts.source_path(location.file_index)
    if path is None:
        return result
    result["file"] = path

    source_file = Path(source_root or ".") / path
    if source_file.exists():
        line, column = offset_to_line_col(source_file.read_text(encoding="utf-8"), location.start)
        result["line"] = line
        result["column"] = column
    return result


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2))
