import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).parent.parent.absolute()
SRC = ROOT / 'src'

assert (SRC / 'solloc' / '__init__.py').is_file()

sys.path.insert(0, str(SRC))

from solloc.core.code_manager import CodeInfo  # noqa: E402
from solloc.core.contracts import ContractDescriptor  # noqa: E402
from solloc.parsers.source_map import SourceMappingDecoder  # noqa: E402
from solloc.utils.exceptions import AddressBytecodeUnavailable, InstructionIndexNotFound  # noqa: E402

INPUTS = Path(__file__).parent / 'Inputs'

# Counter: runtime map entry 3 decodes to 10:4:0:-
COUNTER_CREATION = "608060405234801561001057600080fd5b50"
COUNTER_RUNTIME = "60806040523415"
COUNTER_SRCMAP = "0:120:0:-;;;60:30:0:-"
COUNTER_SRCMAP_RUNTIME = "0:50:0:-;;5:2;10:4;25:8:0:i;3:1:1:o"

TOKEN_CREATION = "6080604052600a600b"
TOKEN_RUNTIME = "60806040526004361061"
TOKEN_SRCMAP = "1:1:1:-"
TOKEN_SRCMAP_RUNTIME = "100:20:1:-;110:5;;;"

METADATA_SUFFIX = "a264697066735822"


class FakeCodeManager:
    """In-memory code provider that counts its calls."""

    def __init__(self, code=None, steps=None, creation=()):
        self.code = dict(code or {})
        self.steps = dict(steps or {})
        self.creation = set(creation)
        self.failing = set()
        self.get_code_calls = 0
        self.translate_calls = 0

    def is_contract_creation_address(self, address):
        return address in self.creation

    def get_code(self, address):
        self.get_code_calls += 1
        if address in self.failing or address not in self.code:
            raise AddressBytecodeUnavailable(address, reason="fake provider")
        return CodeInfo.from_hex(self.code[address])

    def get_instruction_index(self, address, step_index):
        self.translate_calls += 1
        try:
            return self.steps[(address, step_index)]
        except KeyError:
            raise InstructionIndexNotFound(address, step_index, reason="fake provider")


class FakeEth:
    def __init__(self, code=None, tx=None, receipt=None):
        self.code = code or {}
        self.tx = tx
        self.receipt = receipt
        self.get_code_calls = 0

    def get_code(self, address):
        self.get_code_calls += 1
        if address.lower() == "0x" + "ee" * 20:
            raise ConnectionError("node unreachable")
        return self.code.get(address.lower(), b"")

    def get_transaction(self, tx_hash):
        if self.tx is None:
            raise ValueError(f"Transaction with hash {tx_hash} not found")
        return self.tx

    def get_transaction_receipt(self, tx_hash):
        return self.receipt


class FakeManager:
    def __init__(self, result=None):
        self.result = result
        self.requests = []

    def request_blocking(self, method, params):
        self.requests.append((method, params))
        if self.result is None:
            raise ValueError("the method debug_traceTransaction does not exist")
        return self.result


class FakeWeb3:
    def __init__(self, eth, manager=None):
        self.eth = eth
        self.manager = manager or FakeManager()


class CountingDecoder(SourceMappingDecoder):

    def __init__(self):
        self.calls = []

    def decode_at(self, index, srcmap):
        self.calls.append((index, srcmap))
        return super().decode_at(index, srcmap)


@pytest.fixture
def counter():
    return ContractDescriptor(
        name="Counter.sol:Counter",
        bytecode=COUNTER_CREATION,
        runtime_bytecode=COUNTER_RUNTIME,
        srcmap=COUNTER_SRCMAP,
        srcmap_runtime=COUNTER_SRCMAP_RUNTIME,
    )


@pytest.fixture
def token():
    return ContractDescriptor(
        name="Token.sol:Token",
        bytecode=TOKEN_CREATION,
        runtime_bytecode=TOKEN_RUNTIME,
        srcmap=TOKEN_SRCMAP,
        srcmap_runtime=TOKEN_SRCMAP_RUNTIME,
    )


@pytest.fixture
def contracts(counter, token):
    return [token, counter]


@pytest.fixture
def decoder():
    return CountingDecoder()


@pytest.fixture
def code_manager():
    return FakeCodeManager(
        code={
            "0xAA": "0x" + COUNTER_RUNTIME + METADATA_SUFFIX,
            "0xBB": "0x" + TOKEN_RUNTIME + METADATA_SUFFIX,
            "(Contract Creation - Step 0)": "0x" + COUNTER_CREATION + "0000000000000001",
        },
        steps={
            ("0xAA", 7): 3,
            ("0xAA", 5): 2,
            ("0xAA", 9): 3,
            ("0xBB", 7): 1,
        },
        creation={"(Contract Creation - Step 0)"},
    )
