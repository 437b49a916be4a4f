"""
Source Location Tracker

Resolves the source location of the code executing at an address, either
from an instruction index or from an execution trace step, and memoizes
every decoded location per address.
"""

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from solloc.core.contracts import ContractDescriptor, find_contract
from solloc.parsers.source_map import SourceLocation, SourceMappingDecoder
from solloc.utils.exceptions import (
    AddressBytecodeUnavailable,
    DecodeFailure,
    InstructionIndexNotFound,
    SolLocError,
    SourceMapNotFound,
)
from solloc.utils.logging import get_logger

logger = get_logger('tracker')

Contracts = Union[Iterable[ContractDescriptor], Mapping[str, ContractDescriptor]]
Callback = Callable[[Optional[SolLocError], Optional[SourceLocation]], Any]


def instruction_key(index: int) -> str:
    return f"instruction:{index}"


class SourceLocationTracker:
    """
    Process the source code location for the current executing bytecode.

    Args:
        code_manager: provides ``get_code``, ``get_instruction_index`` and
            ``is_contract_creation_address``
        decoder: provides ``decode_at``; defaults to SourceMappingDecoder

    Both resolve methods return the location or raise a SolLocError. When a
    ``callback`` is passed it is called as ``callback(error, location)``
    instead, and its result is returned.

    Entries are never invalidated: the code at an address does not change
    while a trace is being debugged. Failed lookups leave no entry behind.
    """

    def __init__(self, code_manager, decoder: Optional[SourceMappingDecoder] = None):
        self.code_manager = code_manager
        self.decoder = decoder or SourceMappingDecoder()
        self._locations_by_address: Dict[str, Dict[str, SourceLocation]] = {}

    def resolve_by_instruction_index(
        self,
        address: str,
        index: int,
        contracts: Contracts,
        callback: Optional[Callback] = None
    ):
        """Source location of instruction ``index`` of the code at ``address``."""
        return self._deliver(lambda: self._resolve_instruction(address, index, contracts), callback)

    def resolve_by_trace_step_index(
        self,
        address: str,
        step_index: int,
        contracts: Contracts,
        callback: Optional[Callback] = None
    ):
        """
        Source location of the instruction executed at trace step ``step_index``.

        The step is translated first and the result is shared with
        instruction-index lookups, so different steps executing the same
        instruction decode it once. A step that cannot be translated still
        reports a missing code or source map for ``address`` first.
        """
        def resolve():
            try:
                index = self._translate(address, step_index)
            except InstructionIndexNotFound:
                self._extract_source_map(address, contracts)
                raise
            return self._resolve_instruction(address, index, contracts)

        return self._deliver(resolve, callback)

    def resolve_range(self, address: str, indices: Iterable[int], contracts: Contracts) -> List[SourceLocation]:
        """Resolve several instruction indices, identifying the contract at most once."""
        source_map = None
        locations = []
        for index in indices:
            location = self._from_cache(address, instruction_key(index))
            if location is None:
                if source_map is None:
                    source_map = self._extract_source_map(address, contracts)
                location = self._to_cache(address, index, source_map)
            locations.append(location)
        return locations

    # ------------------------------------------------------------------
    # Cache inspection
    # ------------------------------------------------------------------

    def get_cached(self, address: str, key: str) -> Optional[SourceLocation]:
        return self._from_cache(address, key)

    def cache_size(self, address: Optional[str] = None) -> int:
        if address is not None:
            return len(self._locations_by_address.get(self._address_key(address), {}))
        return sum(len(entries) for entries in self._locations_by_address.values())

    def cached_addresses(self) -> List[str]:
        return list(self._locations_by_address)

    # ------------------------------------------------------------------
    # Resolution chain
    # ------------------------------------------------------------------

    @staticmethod
    def _deliver(resolve: Callable[[], SourceLocation], callback: Optional[Callback]):
        if callback is None:
            return resolve()
        try:
            location = resolve()
        except SolLocError as e:
            return callback(e, None)
        return callback(None, location)

    def _resolve_instruction(self, address: str, index: int, contracts: Contracts) -> SourceLocation:
        cached = self._from_cache(address, instruction_key(index))
        if cached is not None:
            logger.trace(f"Cache hit {address} {instruction_key(index)}")
            return cached

        source_map = self._extract_source_map(address, contracts)
        return self._to_cache(address, index, source_map)

    def _translate(self, address: str, step_index: int) -> int:
        try:
            return self.code_manager.get_instruction_index(address, step_index)
        except SolLocError:
            raise
        except Exception as e:
            raise InstructionIndexNotFound(address, step_index, reason=str(e)) from e

    def _extract_source_map(self, address: str, contracts: Contracts) -> str:
        try:
            is_creation = self.code_manager.is_contract_creation_address(address)
            code = self.code_manager.get_code(address)
        except SolLocError:
            raise
        except Exception as e:
            raise AddressBytecodeUnavailable(address, reason=str(e)) from e

        descriptor = find_contract(code.bytecode, contracts, is_creation)
        source_map = descriptor.source_map_for(is_creation) if descriptor else None
        if not source_map:
            raise SourceMapNotFound(address, creation=is_creation)

        logger.debug(
            f"Using {'creation' if is_creation else 'runtime'} srcmap of {descriptor.name} for {address}"
        )
        return source_map

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    @staticmethod
    def _address_key(address: str) -> str:
        return address.lower()

    def _to_cache(self, address: str, index: int, source_map: str) -> SourceLocation:
        try:
            location = self.decoder.decode_at(index, source_map)
        except SolLocError:
            raise
        except Exception as e:
            raise DecodeFailure(f"Failed to decode srcmap at {index}: {e}", index=index) from e

        entries = self._locations_by_address.setdefault(self._address_key(address), {})
        return entries.setdefault(instruction_key(index), location)

    def _from_cache(self, address: str, key: str) -> Optional[SourceLocation]:
        entries = self._locations_by_address.get(self._address_key(address))
        if entries is None:
            return None
        return entries.get(key)
