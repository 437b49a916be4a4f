"""
Locate command implementation.

Resolves the Solidity source location of instructions or trace steps of the
code at an address.
"""

from solloc.core.code_manager import contract_creation_token
from solloc.core.contracts import load_combined_json
from solloc.core.source_location_tracker import SourceLocationTracker
from solloc.parsers.source_map import NO_FILE
from solloc.utils.colors import address as fmt_address, info, warning
from solloc.utils.exceptions import SolLocError
from solloc.utils.logging import logger
from solloc.cli.common import (
    create_code_manager,
    describe_location,
    handle_command_error,
    print_json,
)


def _format(label: str, view) -> str:
    if view["file_index"] == NO_FILE:
        where = warning("no source file")
    else:
        where = view.get("file", f"file #{view['file_index']}")
        if "line" in view:
            where += f":{view['line']}:{view['column']}"
        where = info(where)
    return (
        f"{label}: {where} "
        f"(start={view['start']} length={view['length']} jump={view['jump']})"
    )


def locate_command(args) -> int:
    """
    Execute the locate command.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    json_mode = getattr(args, 'json', False)

    if args.step and not args.tx:
        return handle_command_error(ValueError("--step requires --tx"), json_mode)
    if not args.step and not args.instruction:
        return handle_command_error(ValueError("Give --instruction or --tx/--step"), json_mode)

    # "creation" names the constructor run of a contract-creating transaction
    address = contract_creation_token(0) if args.address == "creation" else args.address

    try:
        contracts = load_combined_json(args.contracts)
        tracker = SourceLocationTracker(create_code_manager(args, address))

        results = []
        if args.instruction:
            locations = tracker.resolve_range(address, args.instruction, contracts)
            results += [(f"instruction {i}", loc) for i, loc in zip(args.instruction, locations)]
        for step in args.step or []:
            location = tracker.resolve_by_trace_step_index(address, step, contracts)
            results.append((f"step {step}", location))
    except SolLocError as e:
        return handle_command_error(e, json_mode)

    logger.debug(f"Resolved {len(results)} locations, {tracker.cache_size()} cached")

    views = [(label, describe_location(loc, contracts, args.source_root)) for label, loc in results]
    if json_mode:
        print_json({
            "address": address,
            "locations": [dict(query=label, **view) for label, view in views],
        })
        return 0

    print(f"Contract: {fmt_address(address)}")
    for label, view in views:
        print(_format(label, view))
    return 0
