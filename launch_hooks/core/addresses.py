"""Address helpers shared by the ledger, pool manager and participants."""

from web3 import Web3

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def derive_address(label: str) -> str:
    """Deterministic checksummed address from a human readable label"""
    return Web3.to_checksum_address(Web3.to_hex(Web3.keccak(text=label)[-20:]))


def normalize_address(address: str) -> str:
    return Web3.to_checksum_address(address)


def address_of(holder) -> str:
    """Address of a participant object, or the address string itself"""
    if isinstance(holder, str):
        return normalize_address(holder)
    return holder.address
