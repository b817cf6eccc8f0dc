"""Minimal ABI helpers for the contract calls swapflow makes.

Only the ERC-20 allowance/approve/balanceOf functions and the router's swap
function are needed, so full JSON ABIs are not loaded.
"""

import re
from dataclasses import dataclass
from typing import Any, Sequence

from eth_abi import decode, encode
from web3 import Web3

from swapflow.currency import MAX_UINT256

_SIGNATURE_PATTERN = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*\((.*)\)\s*$")


@dataclass(frozen=True)
class ContractFunction:
    """A contract function described by its canonical types."""

    name: str
    input_types: tuple[str, ...] = ()
    output_types: tuple[str, ...] = ()

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.input_types)})"

    @property
    def selector(self) -> str:
        """4-byte function selector as 0x-prefixed hex."""
        return "0x" + Web3.keccak(text=self.signature)[:4].hex().removeprefix("0x")

    def encode_call(self, args: Sequence[Any]) -> str:
        """ABI-encode calldata for this function."""
        if len(args) != len(self.input_types):
            raise ValueError(
                f"{self.signature} expects {len(self.input_types)} args, got {len(args)}"
            )
        return self.selector + encode(list(self.input_types), list(args)).hex()

    def decode_output(self, data: str) -> Any:
        """Decode return data. Single-value outputs are unwrapped."""
        raw = bytes.fromhex(data.removeprefix("0x"))
        values = decode(list(self.output_types), raw)
        if len(values) == 1:
            return values[0]
        return values


def parse_signature(text: str, output_types: Sequence[str] = ()) -> ContractFunction:
    """Build a ContractFunction from `name(type1,type2)`.

    Tuple types are not supported; router swap functions take flat arguments.
    """
    match = _SIGNATURE_PATTERN.match(text)
    if not match or "(" in match.group(2):
        raise ValueError(f"Unsupported function signature: {text!r}")

    name, params = match.groups()
    input_types = tuple(p.strip() for p in params.split(",") if p.strip())
    return ContractFunction(name, input_types, tuple(output_types))


ERC20_ALLOWANCE = ContractFunction("allowance", ("address", "address"), ("uint256",))
ERC20_BALANCE_OF = ContractFunction("balanceOf", ("address",), ("uint256",))
ERC20_APPROVE = ContractFunction("approve", ("address", "uint256"), ("bool",))

__all__ = [
    "ContractFunction",
    "parse_signature",
    "ERC20_ALLOWANCE",
    "ERC20_BALANCE_OF",
    "ERC20_APPROVE",
    "MAX_UINT256",
]
