"""Address helpers — all addresses are held in EIP-55 checksum form."""

from __future__ import annotations

from web3 import Web3

ZERO_ADDRESS = "0x" + "00" * 20


def to_checksum(value: str) -> str:
    """Return the checksum form of ``value``.

    Raises ValueError for anything that is not a 20-byte hex address
    (including mixed-case input with a wrong checksum).
    """
    if not isinstance(value, str) or not Web3.is_address(value):
        raise ValueError(f"Not an address: {value!r}")
    return Web3.to_checksum_address(value)


def is_zero_address(value: str) -> bool:
    return value.lower() == ZERO_ADDRESS
