from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from . import config
from .compilers import CompilerSelector
from .errors import ConfigurationError
from .networks import NetworkRegistry, default_networks


@dataclass
class ProjectConfig:
    networks: NetworkRegistry
    compilers: Dict[str, CompilerSelector] = field(default_factory=dict)

    @property
    def solc(self) -> CompilerSelector:
        return self.compilers["solc"]

    def as_dict(self) -> Dict[str, Any]:
        compilers: Dict[str, Any] = {}
        for selector in self.compilers.values():
            compilers.update(selector.as_dict())
        return {"networks": self.networks.as_dict(), "compilers": compilers}


def solc_selector() -> CompilerSelector:
    return CompilerSelector("solc", config.SOLC_VERSION)


def load_project() -> ProjectConfig:
    """Build the project configuration from the environment."""
    return ProjectConfig(
        networks=default_networks(),
        compilers={"solc": solc_selector()},
    )


def ganache_command(
    accounts: int = 50,
    ether: int = 1000,
    gas_limit: int = 999999999999,
    mnemonic: Optional[str] = None,
) -> List[str]:
    """Command line for a deterministic local node: the same accounts on
    every start, derived from the local test phrase. The signing phrase
    (CHAINCONF_MNEMONIC) is never used here."""
    mnemonic = config.DEV_MNEMONIC if mnemonic is None else mnemonic
    if not mnemonic or not mnemonic.strip():
        raise ConfigurationError("CHAINCONF_DEV_MNEMONIC is empty; cannot seed a deterministic node")
    return [
        "ganache-cli",
        "-l", str(gas_limit),
        "-d",
        "-a", str(accounts),
        "-e", str(ether),
        "--noVMErrorsOnRPCResponse",
        "-m", mnemonic.strip(),
    ]


def format_command(argv: List[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)
