"""Token references and exact token amounts.

Amounts are held as integers in the token's smallest unit. Human-readable
values are derived with Decimal so no float coercion ever happens.
"""

import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Optional, Union

from web3 import Web3

MAX_UINT256 = 2**256 - 1

_AMOUNT_PATTERN = re.compile(r"^([0-9]*)(?:\.([0-9]*))?$")


class TokenMismatchError(ValueError):
    """Raised when arithmetic mixes amounts of different tokens."""

    pass


@dataclass(frozen=True)
class NativeCurrency:
    """The chain's native asset (ETH on Arbitrum)."""

    chain_id: int
    symbol: str = "ETH"
    name: str = "Ether"
    decimals: int = 18

    @property
    def is_native(self) -> bool:
        return True

    @property
    def address(self) -> None:
        return None

    def __str__(self) -> str:
        return self.symbol


@dataclass(frozen=True)
class Token:
    """An ERC-20 token contract."""

    chain_id: int
    address: str
    decimals: int
    symbol: str = field(default="", compare=False)
    name: str = field(default="", compare=False)

    def __post_init__(self):
        if not 0 <= self.decimals <= 255:
            raise ValueError(f"Invalid decimals for {self.symbol or self.address}: {self.decimals}")
        object.__setattr__(self, "address", Web3.to_checksum_address(self.address))

    @property
    def is_native(self) -> bool:
        return False

    def __str__(self) -> str:
        return self.symbol or self.address


TokenRef = Union[NativeCurrency, Token]


@dataclass(frozen=True)
class TokenAmount:
    """A raw integer amount of a specific token."""

    token: TokenRef
    raw_amount: int

    def __post_init__(self):
        if self.raw_amount < 0:
            raise ValueError(f"Token amount cannot be negative: {self.raw_amount}")
        if self.raw_amount > MAX_UINT256:
            raise ValueError("Token amount exceeds uint256")

    @classmethod
    def from_decimal(cls, token: TokenRef, value: Union[Decimal, str, int]) -> "TokenAmount":
        """Build an amount from a human-readable value.

        Raises:
            ValueError: If the value has more precision than the token allows
        """
        text = format(Decimal(value), "f")
        # Trailing fraction zeros carry no precision ("1.5000000" USDC is fine)
        if "." in text:
            text = text.rstrip("0").rstrip(".")
        amount = try_parse_amount(text, token, allow_zero=True)
        if amount is None:
            raise ValueError(f"Cannot represent {value} in {token}")
        return amount

    def to_decimal(self) -> Decimal:
        """Exact human-readable value."""
        return Decimal(self.raw_amount).scaleb(-self.token.decimals)

    def to_significant(self, digits: int = 6) -> str:
        """Format with at most `digits` significant digits."""
        value = self.to_decimal()
        if value == 0:
            return "0"

        with localcontext() as ctx:
            ctx.prec = digits
            ctx.rounding = ROUND_HALF_UP
            rounded = +value

        return format(rounded.normalize(), "f")

    def greater_than(self, raw: int) -> bool:
        return self.raw_amount > raw

    def _check_same_token(self, other: "TokenAmount") -> None:
        if self.token != other.token:
            raise TokenMismatchError(f"Cannot combine {self.token} with {other.token}")

    def add(self, other: "TokenAmount") -> "TokenAmount":
        self._check_same_token(other)
        return TokenAmount(self.token, self.raw_amount + other.raw_amount)

    def subtract(self, other: "TokenAmount") -> "TokenAmount":
        self._check_same_token(other)
        return TokenAmount(self.token, self.raw_amount - other.raw_amount)

    def __lt__(self, other: "TokenAmount") -> bool:
        self._check_same_token(other)
        return self.raw_amount < other.raw_amount

    def __le__(self, other: "TokenAmount") -> bool:
        self._check_same_token(other)
        return self.raw_amount <= other.raw_amount

    def __gt__(self, other: "TokenAmount") -> bool:
        self._check_same_token(other)
        return self.raw_amount > other.raw_amount

    def __ge__(self, other: "TokenAmount") -> bool:
        self._check_same_token(other)
        return self.raw_amount >= other.raw_amount

    def __str__(self) -> str:
        return f"{self.to_significant()} {self.token.symbol}"


def try_parse_amount(
    text: Optional[str],
    token: Optional[TokenRef],
    allow_zero: bool = False,
) -> Optional[TokenAmount]:
    """Parse user input into a TokenAmount.

    Returns None instead of raising for empty, negative, non-numeric,
    over-precise (more fraction digits than the token's decimals) or
    out-of-range input. Zero is rejected unless `allow_zero` is set.
    """
    if not text or token is None:
        return None

    match = _AMOUNT_PATTERN.match(text.strip())
    if not match:
        return None

    whole, fraction = match.group(1), match.group(2) or ""
    if not whole and not fraction:
        return None
    if len(fraction) > token.decimals:
        return None

    raw = int((whole or "0") + fraction.ljust(token.decimals, "0"))

    if raw > MAX_UINT256:
        return None
    if raw == 0 and not allow_zero:
        return None

    return TokenAmount(token, raw)
