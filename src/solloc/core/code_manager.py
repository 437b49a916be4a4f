"""
Code Manager

Provides the bytecode executing at an address and translates execution
trace steps into instruction indices of that bytecode.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from eth_utils import is_address, to_checksum_address
from web3 import Web3

from solloc.core.transaction_tracer import TransactionTrace
from solloc.parsers.source_map import build_pc_to_instruction_map
from solloc.utils.exceptions import AddressBytecodeUnavailable, InstructionIndexNotFound
from solloc.utils.logging import get_logger

logger = get_logger('code')

# Code being constructed has no address yet; it is named after the step that created it.
CONTRACT_CREATION_PREFIX = "(Contract Creation - Step "


def contract_creation_token(step_index: int) -> str:
    """Placeholder address of the contract created at ``step_index``."""
    return f"{CONTRACT_CREATION_PREFIX}{step_index})"


def is_contract_creation(address: str) -> bool:
    return CONTRACT_CREATION_PREFIX in str(address)


@dataclass(frozen=True)
class CodeInfo:
    """Bytecode at an address."""
    bytecode: str  # 0x-prefixed hex
    pc_to_instruction_index: Dict[int, int] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_hex(cls, bytecode: str) -> "CodeInfo":
        bytecode = bytecode.lower()
        if not bytecode.startswith("0x"):
            bytecode = "0x" + bytecode
        return cls(bytecode=bytecode, pc_to_instruction_index=build_pc_to_instruction_map(bytecode))

    def instruction_index(self, pc: int) -> Optional[int]:
        return self.pc_to_instruction_index.get(pc)


class CodeManager:
    """
    Bytecode provider backed by a web3 connection and a transaction trace.

    Runtime code is fetched with ``eth_getCode``. Creation code is taken from
    the traced transaction's input (top-level creation) or from code
    registered with :meth:`register_code` (nested CREATE/CREATE2).
    """

    def __init__(self, w3: Optional[Web3] = None, trace: Optional[TransactionTrace] = None):
        self.w3 = w3
        self.trace: Optional[TransactionTrace] = None
        self._code_by_address: Dict[str, CodeInfo] = {}
        if trace is not None:
            self.load_trace(trace)

    @staticmethod
    def _key(address: str) -> str:
        return address if is_contract_creation(address) else address.lower()

    def load_trace(self, trace: TransactionTrace) -> None:
        """Use ``trace`` for step translation; a creation tx registers its init code."""
        self.trace = trace
        if trace.is_creation and trace.input_data and trace.input_data != "0x":
            self.register_code(contract_creation_token(0), trace.input_data)

    def register_code(self, address: str, bytecode: str) -> None:
        self._code_by_address[self._key(address)] = CodeInfo.from_hex(bytecode)

    def is_contract_creation_address(self, address: str) -> bool:
        return is_contract_creation(address)

    def get_code(self, address: str) -> CodeInfo:
        """
        Return the code executing at ``address``.

        Raises:
            AddressBytecodeUnavailable: no code is known or deployed there
        """
        key = self._key(address)
        cached = self._code_by_address.get(key)
        if cached is not None:
            return cached

        if is_contract_creation(address):
            raise AddressBytecodeUnavailable(address, reason="creation code not registered")
        if self.w3 is None:
            raise AddressBytecodeUnavailable(address, reason="no RPC connection")
        if not is_address(address):
            raise AddressBytecodeUnavailable(address, reason="invalid address")

        try:
            code = self.w3.eth.get_code(to_checksum_address(address))
        except Exception as e:
            raise AddressBytecodeUnavailable(address, reason=str(e)) from e

        code_hex = Web3.to_hex(code) if isinstance(code, (bytes, bytearray)) else str(code)
        if code_hex in ("0x", ""):
            raise AddressBytecodeUnavailable(address, reason="no code deployed")

        info = CodeInfo.from_hex(code_hex)
        self._code_by_address[key] = info
        logger.debug(f"Fetched {len(info.pc_to_instruction_index)} instructions of code at {address}")
        return info

    def get_instruction_index(self, address: str, step_index: int) -> int:
        """
        Translate a trace step into an instruction index of ``address``'s code.

        Raises:
            InstructionIndexNotFound: no trace, step out of range, or the
                step's pc is not an instruction boundary of the code
            AddressBytecodeUnavailable: no code at ``address``
        """
        if self.trace is None:
            raise InstructionIndexNotFound(address, step_index, reason="no trace loaded")
        if not 0 <= step_index < len(self.trace.steps):
            raise InstructionIndexNotFound(
                address, step_index,
                reason=f"trace has {len(self.trace.steps)} steps"
            )

        pc = self.trace.steps[step_index].pc
        code = self.get_code(address)

        index = code.instruction_index(pc)
        if index is None:
            raise InstructionIndexNotFound(address, step_index, reason=f"pc {pc} is not an instruction")
        return index
