#!/usr/bin/env python3
"""
Main entry point for solloc

This module serves as the CLI entry point, handling argument parsing
and routing to the command implementations in the cli/ module.
"""

import sys
import argparse

from solloc import __version__
from .common import configure_logging
from .decode import decode_command
from .locate import locate_command


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='solloc - Solidity source location lookup for EVM bytecode')
    parser.add_argument('--version', '-v', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    parser.add_argument('--verbose', action='store_true', help='Log every cache lookup')
    parser.add_argument('--log-file', help='Write all log records to this file')

    subparsers = parser.add_subparsers(dest='command', help='Commands')
    subparsers.required = True

    # decode command
    decode_parser = subparsers.add_parser('decode', help='Decode a compressed source map')
    decode_parser.add_argument('srcmap', help='Source map string, or @path to read it from a file')
    decode_parser.add_argument('index', nargs='?', type=int, default=None, help='Instruction index (default: all entries)')
    decode_parser.add_argument('--json', action='store_true', help='Output as JSON')

    # locate command
    locate_parser = subparsers.add_parser('locate', help='Find the source location of code executing at an address')
    locate_parser.add_argument('address', help='Contract address, or "creation" for the constructor of a creation tx')
    locate_parser.add_argument('--contracts', '-c', required=True, help='solc combined.json (or a directory containing it)')
    locate_parser.add_argument('--instruction', '-i', type=int, action='append', help='Instruction index (repeatable)')
    locate_parser.add_argument('--tx', help='Transaction hash whose trace the --step indices refer to')
    locate_parser.add_argument('--step', '-s', type=int, action='append', help='Trace step index (repeatable, needs --tx)')
    locate_parser.add_argument('--code', help='Bytecode at the address (hex); skips eth_getCode')
    locate_parser.add_argument('--rpc', '-r', default=None, help='RPC URL (default: $SOLLOC_RPC_URL or http://localhost:8545)')
    locate_parser.add_argument('--source-root', default=None, help='Directory the sourceList paths are relative to')
    locate_parser.add_argument('--json', action='store_true', help='Output as JSON')

    return parser


def main(argv=None):
    """Main entry point for solloc CLI."""
    args = build_parser().parse_args(argv)
    configure_logging(args)

    if args.command == 'decode':
        return decode_command(args)
    elif args.command == 'locate':
        return locate_command(args)

    return 0


if __name__ == '__main__':
    sys.exit(main())
