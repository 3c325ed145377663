from pathlib import Path
import os
from typing import Optional, Union
from dotenv import load_dotenv

from .errors import ConfigurationError

# Load environment variables from .env
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

# Numeric settings stay raw strings here; as_int() parses them when used
# so a malformed value only affects the command that needs it.

# Local development node (ganache / hardhat)
DEV_HOST = os.getenv("CHAINCONF_DEV_HOST", "127.0.0.1")
DEV_PORT = os.getenv("CHAINCONF_DEV_PORT", "8545")

# Seeds the deterministic local node only. It is a public test phrase and
# must never be the one that signs for a live network.
DEV_MNEMONIC = os.getenv(
    "CHAINCONF_DEV_MNEMONIC",
    "candy maple cake sugar pudding cream honey rich smooth crumble sweet treat",
)

# Rinkeby signing provider. The recovery phrase is a secret and must
# only ever come from the environment or .env (which is not versioned).
MNEMONIC = os.getenv("CHAINCONF_MNEMONIC", "")
RINKEBY_URL = os.getenv("CHAINCONF_RINKEBY_URL", "")
RINKEBY_NETWORK_ID = 4
RINKEBY_GAS = os.getenv("CHAINCONF_RINKEBY_GAS", "")
RINKEBY_GAS_PRICE = os.getenv("CHAINCONF_RINKEBY_GAS_PRICE", "")

# HD wallet: which derived accounts the wallet exposes
ADDRESS_INDEX = os.getenv("CHAINCONF_ADDRESS_INDEX", "0")
NUM_ADDRESSES = os.getenv("CHAINCONF_NUM_ADDRESSES", "1")

SOLC_VERSION = os.getenv("CHAINCONF_SOLC_VERSION", "^0.4.24")


def as_int(name: str, value: Union[int, str, None], optional: bool = False) -> Optional[int]:
    """Parse the setting ``name``; empty optional settings give None."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    raw = "" if value is None else str(value).strip()
    if not raw and optional:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None
