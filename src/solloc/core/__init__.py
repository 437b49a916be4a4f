"""
Core module for solloc.

This module contains the source-location resolution logic:
- SourceLocationTracker: resolves and caches source locations
- CodeManager: bytecode provider and trace step translation
- TransactionTracer: loads execution traces over JSON-RPC
- ContractDescriptor / ContractSet: compiled contracts of a session
"""

from .contracts import (
    ContractDescriptor,
    ContractSet,
    descriptors_from_combined,
    load_combined_json,
    find_contract,
    find_source_map,
)
from .transaction_tracer import (
    TransactionTracer,
    TransactionTrace,
    TraceStep,
)
from .code_manager import (
    CodeManager,
    CodeInfo,
    contract_creation_token,
    is_contract_creation,
)
from .source_location_tracker import SourceLocationTracker, instruction_key

__all__ = [
    'ContractDescriptor',
    'ContractSet',
    'descriptors_from_combined',
    'load_combined_json',
    'find_contract',
    'find_source_map',
    'TransactionTracer',
    'TransactionTrace',
    'TraceStep',
    'CodeManager',
    'CodeInfo',
    'contract_creation_token',
    'is_contract_creation',
    'SourceLocationTracker',
    'instruction_key',
]
