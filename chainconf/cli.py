"""
chainconf command line.

Usage:
    chainconf networks
    chainconf check development
    chainconf compiler --available 0.4.24 0.4.25
    chainconf ganache
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .errors import ChainConfError
from .networks import connect
from .project import format_command, ganache_command, load_project, solc_selector


def cmd_networks(args) -> int:
    project = load_project()
    for profile in project.networks:
        print(f"{profile.name}")
        for key, value in profile.as_dict().items():
            if callable(value):
                value = f"<factory {getattr(value, '__name__', value)}>"
            print(f"  {key:<11}: {value}")
    return 0


def cmd_check(args) -> int:
    project = load_project()
    profile = project.networks.get(args.network)
    print(f"[INFO] Connecting to {profile.name} ...")
    w3 = connect(profile)
    print(f"[OK] {profile.name}: chain id {w3.eth.chain_id}, block {w3.eth.block_number}")
    if profile.requires_signing:
        for address in w3.eth.accounts:
            print(f"  account: {address}")
    return 0


def cmd_compiler(args) -> int:
    solc = solc_selector()
    resolved = solc.resolve(args.available or None)
    print(f"{solc.name} {solc.version} -> {resolved}")
    return 0


def cmd_ganache(args) -> int:
    argv = ganache_command(
        accounts=args.accounts,
        ether=args.ether,
        gas_limit=args.gas_limit,
        mnemonic=args.mnemonic,
    )
    print(format_command(argv))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chainconf")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command")
    sub.required = True

    p = sub.add_parser("networks", help="List network profiles.")
    p.set_defaults(func=cmd_networks)

    p = sub.add_parser("check", help="Connect to a network and report its state.")
    p.add_argument("network", help="Profile name, e.g. development.")
    p.set_defaults(func=cmd_check)

    p = sub.add_parser("compiler", help="Resolve the solc version range.")
    p.add_argument(
        "--available",
        nargs="+",
        default=None,
        help="Releases to resolve against (defaults to the bundled solc list).",
    )
    p.set_defaults(func=cmd_compiler)

    p = sub.add_parser("ganache", help="Print a deterministic ganache-cli command.")
    p.add_argument("--accounts", type=int, default=50)
    p.add_argument("--ether", type=int, default=1000)
    p.add_argument("--gas-limit", type=int, default=999999999999)
    p.add_argument(
        "--mnemonic",
        default=None,
        help="Test phrase for the local node (defaults to CHAINCONF_DEV_MNEMONIC).",
    )
    p.set_defaults(func=cmd_ganache)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except ChainConfError as e:
        print(f"[ERR] {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
