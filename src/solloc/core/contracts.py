"""
Compiled contract descriptors and bytecode matching.

Descriptors are read from solc ``--combined-json bin,bin-runtime,srcmap,srcmap-runtime``
output. Older tooling emitted ``bytecode``/``runtimeBytecode``/``srcmapRuntime``
keys instead; both spellings are accepted.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

from eth_utils import remove_0x_prefix

from solloc.utils.exceptions import ContractsFileError
from solloc.utils.logging import get_logger

logger = get_logger('contracts')


def _normalize_code(code: Optional[str]) -> str:
    """Lowercase hex without 0x prefix."""
    if not code:
        return ""
    return remove_0x_prefix(code.strip()).lower()


@dataclass(frozen=True)
class ContractDescriptor:
    """One compiled contract: bytecodes and their source maps."""
    name: str
    bytecode: str = ""
    runtime_bytecode: str = ""
    srcmap: str = ""
    srcmap_runtime: str = ""

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "ContractDescriptor":
        # backwards compatibility: attribute names differ between tool versions
        srcmap_runtime = data.get("srcmap-runtime")
        if srcmap_runtime is None:
            srcmap_runtime = data.get("srcmapRuntime", "")
        bytecode = data.get("bin")
        if bytecode is None:
            bytecode = data.get("bytecode", "")
        runtime_bytecode = data.get("bin-runtime")
        if runtime_bytecode is None:
            runtime_bytecode = data.get("runtimeBytecode", "")
        return cls(
            name=name,
            bytecode=_normalize_code(bytecode),
            runtime_bytecode=_normalize_code(runtime_bytecode),
            srcmap=data.get("srcmap") or "",
            srcmap_runtime=srcmap_runtime or "",
        )

    def code_for(self, is_creation: bool) -> str:
        return self.bytecode if is_creation else self.runtime_bytecode

    def source_map_for(self, is_creation: bool) -> str:
        return self.srcmap if is_creation else self.srcmap_runtime

    def matches(self, code: str, is_creation: bool) -> bool:
        """
        True if this contract's bytecode is a prefix of ``code``.

        Deployed code may carry appended constructor arguments or immutables,
        hence a prefix and not an equality test. Contracts without bytecode
        (interfaces, abstract contracts) never match.
        """
        own = self.code_for(is_creation)
        return bool(own) and _normalize_code(code).startswith(own)


@dataclass
class ContractSet:
    """Descriptors of one debugging session, in file order."""
    descriptors: List[ContractDescriptor] = field(default_factory=list)
    source_list: List[str] = field(default_factory=list)

    def __iter__(self) -> Iterator[ContractDescriptor]:
        return iter(self.descriptors)

    def __len__(self) -> int:
        return len(self.descriptors)

    def source_path(self, file_index: int) -> Optional[str]:
        """Source path for a decoded file index, None for -1 or unknown."""
        if 0 <= file_index < len(self.source_list):
            return self.source_list[file_index]
        return None


def descriptors_from_combined(data: Dict[str, Any]) -> ContractSet:
    """
    Build a ContractSet from parsed combined-json data.

    Accepts the solc layout ``{"contracts": {...}, "sourceList": [...]}`` as
    well as a bare ``{name: contract}`` mapping.
    """
    contracts = data.get("contracts", data) if isinstance(data, dict) else None
    if not isinstance(contracts, dict):
        raise ContractsFileError("Expected a mapping of contract name to contract data")

    descriptors = []
    for name, contract_data in contracts.items():
        if not isinstance(contract_data, dict):
            logger.warning(f"Skipping contract entry {name}: not an object")
            continue
        descriptors.append(ContractDescriptor.from_dict(name, contract_data))

    source_list = data.get("sourceList", []) if "contracts" in data else []
    logger.debug(f"Loaded {len(descriptors)} contract descriptors")
    return ContractSet(descriptors=descriptors, source_list=list(source_list))


def load_combined_json(path: Union[str, Path]) -> ContractSet:
    """
    Load descriptors from a combined.json file, or from a directory holding one.
    """
    path = Path(path)
    if path.is_dir():
        path = path / "combined.json"
    if not path.exists():
        raise ContractsFileError(f"combined.json not found: {path}", path=str(path))

    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ContractsFileError(f"Invalid JSON in {path}: {e}", path=str(path)) from e

    contract_set = descriptors_from_combined(data)
    if not contract_set.descriptors:
        raise ContractsFileError(f"No contracts found in {path}", path=str(path))
    return contract_set


def _iter_descriptors(
    contracts: Union[Iterable[ContractDescriptor], Mapping[str, ContractDescriptor]]
) -> Iterable[ContractDescriptor]:
    if isinstance(contracts, Mapping):
        return contracts.values()
    return contracts


def find_contract(
    code: str,
    contracts: Union[Iterable[ContractDescriptor], Mapping[str, ContractDescriptor]],
    is_creation: bool
) -> Optional[ContractDescriptor]:
    """
    Return the first descriptor (iteration order) whose creation or runtime
    bytecode prefixes ``code``.
    """
    for descriptor in _iter_descriptors(contracts):
        if descriptor.matches(code, is_creation):
            return descriptor
    return None


def find_source_map(
    code: str,
    contracts: Union[Iterable[ContractDescriptor], Mapping[str, ContractDescriptor]],
    is_creation: bool
) -> Optional[str]:
    """Source map of the contract matching ``code``, or None."""
    descriptor = find_contract(code, contracts, is_creation)
    if descriptor is None:
        return None
    return descriptor.source_map_for(is_creation)
