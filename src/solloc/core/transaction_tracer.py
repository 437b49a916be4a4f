"""
Transaction tracing over JSON-RPC.

Fetches the struct-log trace of a mined transaction with
``debug_traceTransaction`` so trace step indices can later be mapped back to
program counters.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from web3 import Web3

from solloc.utils.exceptions import (
    DebugTraceUnavailableError,
    RPCConnectionError,
    TransactionNotFoundError,
)
from solloc.utils.logging import get_logger

logger = get_logger('tracer')

DEFAULT_RPC_URL = "http://localhost:8545"


@dataclass
class TraceStep:
    """A single step in an EVM execution trace."""
    pc: int
    op: str
    depth: int
    gas: int = 0
    gas_cost: int = 0
    error: Optional[str] = None

    @classmethod
    def from_struct_log(cls, log: Dict[str, Any]) -> "TraceStep":
        return cls(
            pc=log['pc'],
            op=log['op'],
            depth=log.get('depth', 1),
            gas=log.get('gas', 0),
            gas_cost=log.get('gasCost', 0),
            error=log.get('error'),
        )


@dataclass
class TransactionTrace:
    """Trace of a transaction execution."""
    tx_hash: str
    from_addr: str
    to_addr: Optional[str]
    input_data: str
    steps: List[TraceStep] = field(default_factory=list)
    success: bool = True
    contract_address: Optional[str] = None  # For contract creation transactions

    @property
    def is_creation(self) -> bool:
        return not self.to_addr


class TransactionTracer:
    """
    Loads transaction traces from an Ethereum node.
    """

    def __init__(self, rpc_url: str = DEFAULT_RPC_URL, timeout: int = 30, w3: Optional[Web3] = None):
        self.rpc_url = rpc_url
        self.w3 = w3 or Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))

        if w3 is None:
            try:
                # A direct call is more reliable than is_connected()
                self.w3.eth.block_number
            except Exception as e:
                raise RPCConnectionError(f"Failed to connect to {rpc_url}: {e}", rpc_url=rpc_url) from e

    def trace_transaction(self, tx_hash: str) -> TransactionTrace:
        """Fetch a transaction, its receipt and its struct-log trace."""
        if isinstance(tx_hash, str) and not tx_hash.startswith('0x'):
            tx_hash = '0x' + tx_hash

        try:
            tx = self.w3.eth.get_transaction(tx_hash)
            receipt = self.w3.eth.get_transaction_receipt(tx_hash)
        except Exception as e:
            raise TransactionNotFoundError(tx_hash, reason=str(e), rpc_url=self.rpc_url) from e
        if tx is None or receipt is None:
            raise TransactionNotFoundError(tx_hash, rpc_url=self.rpc_url)

        try:
            trace_result = self.w3.manager.request_blocking(
                "debug_traceTransaction",
                [tx_hash, {"disableStorage": True, "disableMemory": True, "disableStack": True}]
            )
        except Exception as e:
            raise DebugTraceUnavailableError(tx_hash, reason=str(e)) from e

        steps = [TraceStep.from_struct_log(log) for log in trace_result.get('structLogs', [])]
        logger.debug(f"Loaded {len(steps)} trace steps for {tx_hash}")

        input_data = tx.get('input', '0x')
        if isinstance(input_data, (bytes, bytearray)):
            input_data = Web3.to_hex(input_data)

        return TransactionTrace(
            tx_hash=tx_hash,
            from_addr=tx['from'],
            to_addr=tx.get('to'),
            input_data=input_data,
            steps=steps,
            success=receipt['status'] == 1,
            contract_address=receipt.get('contractAddress'),
        )
