import pytest

from solloc.core.source_location_tracker import SourceLocationTracker, instruction_key
from solloc.parsers.source_map import JumpType, SourceLocation
from solloc.utils.exceptions import (
    AddressBytecodeUnavailable,
    DecodeFailure,
    InstructionIndexNotFound,
    SourceMapNotFound,
)

from solloc.core.code_manager import CodeManager
from solloc.core.transaction_tracer import TraceStep, TransactionTrace

from conftest import (
    COUNTER_RUNTIME,
    COUNTER_SRCMAP_RUNTIME,
    METADATA_SUFFIX,
    FakeCodeManager,
    FakeEth,
    FakeWeb3,
)

RUNTIME_ADDRESS = "0x" + "ab" * 20
EMPTY = "0x" + "cd" * 20


def make_trace(pcs):
    return TransactionTrace(
        tx_hash="0x01",
        from_addr="0x" + "11" * 20,
        to_addr=RUNTIME_ADDRESS,
        input_data="0x",
        steps=[TraceStep(pc=pc, op="OP", depth=1) for pc in pcs],
    )


@pytest.fixture
def tracker(code_manager, decoder):
    return SourceLocationTracker(code_manager, decoder)


def test_instruction_index_resolves_runtime_entry(tracker, contracts):
    location = tracker.resolve_by_instruction_index("0xAA", 3, contracts)
    assert location == SourceLocation(start=10, length=4, file_index=0, jump=JumpType.NONE)


def test_second_lookup_is_served_from_cache(tracker, contracts, code_manager, decoder):
    first = tracker.resolve_by_instruction_index("0xAA", 3, contracts)
    second = tracker.resolve_by_instruction_index("0xAA", 3, contracts)

    assert first == second
    assert second is first
    assert len(decoder.calls) == 1
    assert code_manager.get_code_calls == 1


def test_decoder_receives_runtime_map(tracker, contracts, decoder):
    tracker.resolve_by_instruction_index("0xAA", 3, contracts)
    assert decoder.calls == [(3, COUNTER_SRCMAP_RUNTIME)]


def test_trace_step_shares_instruction_entry(tracker, contracts, decoder):
    direct = tracker.resolve_by_instruction_index("0xAA", 3, contracts)
    via_trace = tracker.resolve_by_trace_step_index("0xAA", 7, contracts)

    assert via_trace == direct
    assert len(decoder.calls) == 1
    assert tracker.get_cached("0xAA", "instruction:3") == direct
    assert tracker.get_cached("0xAA", "vmtrace:7") is None


def test_trace_step_populates_instruction_key(tracker, contracts, decoder):
    location = tracker.resolve_by_trace_step_index("0xAA", 7, contracts)

    assert location == SourceLocation(10, 4, 0, JumpType.NONE)
    assert tracker.get_cached("0xAA", instruction_key(3)) == location
    assert tracker.get_cached("0xAA", "vmtrace:7") is None

    # a later instruction lookup does not decode again
    tracker.resolve_by_instruction_index("0xAA", 3, contracts)
    assert len(decoder.calls) == 1


def test_trace_steps_on_same_instruction_decode_once(tracker, contracts, decoder):
    tracker.resolve_by_trace_step_index("0xAA", 7, contracts)
    tracker.resolve_by_trace_step_index("0xAA", 9, contracts)
    assert len(decoder.calls) == 1
    assert tracker.cache_size("0xAA") == 1


def test_key_spaces_are_independent(tracker, contracts):
    # step 5 executes instruction 2, not 5
    by_index = tracker.resolve_by_instruction_index("0xAA", 5, contracts)
    by_step = tracker.resolve_by_trace_step_index("0xAA", 5, contracts)

    assert by_index == SourceLocation(3, 1, 1, JumpType.OUT_OF_FUNCTION)
    assert by_step == SourceLocation(5, 2, 0, JumpType.NONE)
    assert tracker.cache_size("0xAA") == 2


def test_no_cross_address_leakage(tracker, contracts):
    counter_location = tracker.resolve_by_instruction_index("0xAA", 1, contracts)
    assert tracker.get_cached("0xBB", instruction_key(1)) is None

    token_location = tracker.resolve_by_instruction_index("0xBB", 1, contracts)
    assert counter_location == SourceLocation(0, 50, 0, JumpType.NONE)
    assert token_location == SourceLocation(110, 5, 1, JumpType.NONE)
    assert sorted(tracker.cached_addresses()) == ["0xaa", "0xbb"]


def test_address_case_shares_entries(tracker, contracts, decoder):
    tracker.resolve_by_instruction_index("0xAA", 3, contracts)
    tracker.resolve_by_instruction_index("0xaa", 3, contracts)
    assert len(decoder.calls) == 1


def test_creation_context_uses_creation_map(tracker, contracts):
    location = tracker.resolve_by_instruction_index("(Contract Creation - Step 0)", 3, contracts)
    assert location == SourceLocation(60, 30, 0, JumpType.NONE)


def test_runtime_code_never_uses_creation_map(counter, decoder):
    manager = FakeCodeManager(code={"0xCC": "0x" + counter.runtime_bytecode})
    tracker = SourceLocationTracker(manager, decoder)

    tracker.resolve_by_instruction_index("0xCC", 0, [counter])
    assert decoder.calls == [(0, counter.srcmap_runtime)]


def test_first_matching_descriptor_wins(counter, decoder):
    shadow = counter.__class__(
        name="Shadow.sol:Counter",
        runtime_bytecode=counter.runtime_bytecode,
        srcmap_runtime="7:7:2:-",
    )
    manager = FakeCodeManager(code={"0xCC": "0x" + counter.runtime_bytecode})
    tracker = SourceLocationTracker(manager, decoder)

    location = tracker.resolve_by_instruction_index("0xCC", 0, [shadow, counter])
    assert location == SourceLocation(7, 7, 2, JumpType.NONE)


def test_contracts_mapping_is_accepted(tracker, counter, token):
    location = tracker.resolve_by_instruction_index("0xAA", 4, {"Token": token, "Counter": counter})
    assert location == SourceLocation(25, 8, 0, JumpType.INTO_FUNCTION)


def test_unknown_code_raises_source_map_not_found(tracker, token, decoder):
    with pytest.raises(SourceMapNotFound):
        tracker.resolve_by_instruction_index("0xAA", 3, [token])
    assert tracker.cache_size() == 0
    assert decoder.calls == []


def test_missing_code_raises_and_leaves_no_entry(tracker, contracts):
    with pytest.raises(AddressBytecodeUnavailable):
        tracker.resolve_by_instruction_index("0xDD", 0, contracts)
    assert tracker.cache_size() == 0


def test_failed_translation_is_not_cached(tracker, contracts, decoder):
    with pytest.raises(InstructionIndexNotFound):
        tracker.resolve_by_trace_step_index("0xAA", 999, contracts)
    assert tracker.cache_size() == 0
    assert decoder.calls == []


def test_failure_for_one_address_does_not_affect_another(tracker, contracts, code_manager):
    code_manager.failing.add("0xAA")
    with pytest.raises(AddressBytecodeUnavailable):
        tracker.resolve_by_instruction_index("0xAA", 1, contracts)

    location = tracker.resolve_by_instruction_index("0xBB", 1, contracts)
    assert location == SourceLocation(110, 5, 1, JumpType.NONE)


def test_failures_are_retried_from_scratch(tracker, contracts, code_manager):
    code_manager.failing.add("0xAA")
    with pytest.raises(AddressBytecodeUnavailable):
        tracker.resolve_by_instruction_index("0xAA", 3, contracts)

    code_manager.failing.clear()
    assert tracker.resolve_by_instruction_index("0xAA", 3, contracts).start == 10
    assert code_manager.get_code_calls == 2


def test_malformed_map_raises_decode_failure(counter):
    broken = counter.__class__(
        name="Broken",
        runtime_bytecode=counter.runtime_bytecode,
        srcmap_runtime="0:1:0:-;x:2",
    )
    manager = FakeCodeManager(code={"0xCC": "0x" + counter.runtime_bytecode})
    tracker = SourceLocationTracker(manager)

    with pytest.raises(DecodeFailure):
        tracker.resolve_by_instruction_index("0xCC", 1, [broken])
    assert tracker.cache_size() == 0


def test_collaborator_exceptions_are_wrapped(contracts, code_manager):
    class BrokenProvider(FakeCodeManager):
        def get_code(self, address):
            if address == "0xDD":
                raise RuntimeError("connection reset")
            return super().get_code(address)

        def get_instruction_index(self, address, step_index):
            raise IndexError(step_index)

    tracker = SourceLocationTracker(BrokenProvider(code=code_manager.code))
    with pytest.raises(AddressBytecodeUnavailable, match="connection reset"):
        tracker.resolve_by_instruction_index("0xDD", 0, contracts)
    with pytest.raises(InstructionIndexNotFound):
        tracker.resolve_by_trace_step_index("0xAA", 3, contracts)


def test_creation_check_failure_reaches_callback(contracts, code_manager):
    class BrokenProvider(FakeCodeManager):
        def is_contract_creation_address(self, address):
            raise RuntimeError("provider closed")

    tracker = SourceLocationTracker(BrokenProvider(code=code_manager.code))
    received = []
    tracker.resolve_by_instruction_index(
        "0xAA", 3, contracts, callback=lambda error, location: received.append((error, location))
    )

    [(error, location)] = received
    assert isinstance(error, AddressBytecodeUnavailable)
    assert "provider closed" in str(error)
    assert location is None


def test_untranslatable_step_without_code_reports_missing_code(contracts):
    manager = CodeManager(FakeWeb3(FakeEth()), make_trace([0]))
    tracker = SourceLocationTracker(manager)

    with pytest.raises(AddressBytecodeUnavailable):
        tracker.resolve_by_trace_step_index(EMPTY, 0, contracts)
    with pytest.raises(AddressBytecodeUnavailable):
        tracker.resolve_by_trace_step_index(EMPTY, 50, contracts)
    assert tracker.cache_size() == 0


def test_untranslatable_step_of_unknown_contract_reports_missing_map(token):
    deployed = bytes.fromhex(COUNTER_RUNTIME + METADATA_SUFFIX)
    manager = CodeManager(FakeWeb3(FakeEth(code={RUNTIME_ADDRESS: deployed})), make_trace([0]))
    tracker = SourceLocationTracker(manager)

    with pytest.raises(SourceMapNotFound):
        tracker.resolve_by_trace_step_index(RUNTIME_ADDRESS, 50, [token])


def test_untranslatable_step_of_known_contract(contracts):
    deployed = bytes.fromhex(COUNTER_RUNTIME + METADATA_SUFFIX)
    manager = CodeManager(FakeWeb3(FakeEth(code={RUNTIME_ADDRESS: deployed})), make_trace([0, 1]))
    tracker = SourceLocationTracker(manager)

    # pc 1 is PUSH1 data
    with pytest.raises(InstructionIndexNotFound, match="pc 1"):
        tracker.resolve_by_trace_step_index(RUNTIME_ADDRESS, 1, contracts)
    assert tracker.resolve_by_trace_step_index(RUNTIME_ADDRESS, 0, contracts).start == 0


def test_callback_receives_location(tracker, contracts):
    received = []
    result = tracker.resolve_by_instruction_index(
        "0xAA", 3, contracts, callback=lambda error, location: received.append((error, location)) or "done"
    )
    assert result == "done"
    assert received == [(None, SourceLocation(10, 4, 0, JumpType.NONE))]


def test_callback_receives_error(tracker, token):
    received = []
    tracker.resolve_by_trace_step_index(
        "0xAA", 7, [token], callback=lambda error, location: received.append((error, location))
    )
    [(error, location)] = received
    assert isinstance(error, SourceMapNotFound)
    assert location is None


def test_resolve_range_identifies_contract_once(tracker, contracts, code_manager, decoder):
    tracker.resolve_by_instruction_index("0xAA", 0, contracts)
    locations = tracker.resolve_range("0xAA", [0, 2, 3, 4], contracts)

    assert [loc.start for loc in locations] == [0, 5, 10, 25]
    assert code_manager.get_code_calls == 2
    assert len(decoder.calls) == 4


def test_resolve_range_all_cached_skips_provider(tracker, contracts, code_manager):
    tracker.resolve_by_instruction_index("0xAA", 3, contracts)
    tracker.resolve_range("0xAA", [3, 3], contracts)
    assert code_manager.get_code_calls == 1
