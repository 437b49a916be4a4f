"""
Decode command implementation.

Decodes a compressed source map offline, either one entry or all of them.
"""

from pathlib import Path

from solloc.parsers.source_map import SourceLocation, SourceMappingDecoder
from solloc.utils.colors import info, number
from solloc.utils.exceptions import SolLocError
from solloc.cli.common import handle_command_error, print_json


def _read_srcmap(value: str) -> str:
    # @path reads the map from a file
    if value.startswith('@'):
        return Path(value[1:]).read_text().strip()
    return value


def _format(index: int, location: SourceLocation) -> str:
    return (
        f"{number(index)}: start={location.start} length={location.length} "
        f"file={location.file_index} jump={location.jump.value}"
    )


def decode_command(args) -> int:
    """
    Execute the decode command.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    json_mode = getattr(args, 'json', False)
    decoder = SourceMappingDecoder()

    try:
        srcmap = _read_srcmap(args.srcmap)
        if args.index is None:
            locations = list(enumerate(decoder.decompress_all(srcmap)))
        else:
            locations = [(args.index, decoder.decode_at(args.index, srcmap))]
    except (SolLocError, OSError) as e:
        return handle_command_error(e, json_mode)

    if json_mode:
        print_json([dict(index=i, **location.to_dict()) for i, location in locations])
        return 0

    print(f"Decoded {info(len(locations))} entries")
    for index, location in locations:
        print(_format(index, location))
    return 0
