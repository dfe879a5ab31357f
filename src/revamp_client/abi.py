from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

ABIS_DIR = Path(__file__).parent / "abis"

REVAMP_ABI_PATH = ABIS_DIR / "RevampDeFi.json"
SHAREHOLDING_ABI_PATH = ABIS_DIR / "Shareholding.json"
ERC20_ABI_PATH = ABIS_DIR / "ERC20.json"


def load_abi(path: str | Path) -> list[dict]:
    """Load an ABI from a JSON file and return its "abi" field.

    Args:
        path: Path to the JSON file containing an "abi" field.

    Returns:
        ABI as a list of dictionaries.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        KeyError: If the JSON does not contain an "abi" field.
    """
    p = Path(path)
    with p.open() as f:
        data = json.load(f)
    return data["abi"]


@lru_cache(maxsize=None)
def load_revamp_abi() -> list[dict]:
    """Load the RevampDeFi ABI."""
    return load_abi(REVAMP_ABI_PATH)


@lru_cache(maxsize=None)
def load_shareholding_abi() -> list[dict]:
    """Load the Shareholding pool ABI."""
    return load_abi(SHAREHOLDING_ABI_PATH)


@lru_cache(maxsize=None)
def load_erc20_abi() -> list[dict]:
    """Load the ERC20 ABI."""
    return load_abi(ERC20_ABI_PATH)
