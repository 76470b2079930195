import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Union

import yaml
from web3 import Web3


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file)


def _load_json(filepath: Path) -> dict:
    """Loads a JSON file."""
    with open(filepath, "r") as file:
        return json.load(file)


def parse_wei(value: Union[int, str]) -> int:
    """
    Converts an amount to wei.

    Accepts plain integers (already wei) or strings like "0.01 ether" / "3 gwei".
    """
    if isinstance(value, int):
        return value
    parts = str(value).split()
    try:
        if len(parts) == 1:
            return int(parts[0])
        if len(parts) == 2:
            amount, unit = parts
            return int(Web3.to_wei(Decimal(amount), unit.lower()))
    except (InvalidOperation, ValueError) as error:
        raise ValueError(f"Invalid amount '{value}': {error}") from error
    raise ValueError(f"Invalid amount '{value}'; expected '<number> <unit>'")


def format_gas_price(wei: int) -> str:
    return f"{Web3.from_wei(wei, 'gwei')} gwei"


def format_amount(wei: int, currency: str) -> str:
    return f"{Web3.from_wei(wei, 'ether')} {currency}"
