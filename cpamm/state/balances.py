"""
Token ledger: (holder, asset) -> amount, plus mint records for supply tracking.

This is the debit/credit capability the pool engine runs on. Single operations
and batches are atomic and fail closed: on any error no balance or supply moves.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple, Union


# Type aliases
PubKey = str  # holder identity or program-owned address, 0x hex
AssetId = str  # mint address, 0x hex
Amount = int  # non-negative integer in the asset's smallest unit

# Native asset used to pay for account creation
NATIVE_ASSET = "0x" + "00" * 32


class LedgerError(ValueError):
    """Raised when a ledger operation cannot be applied."""


class InsufficientFunds(LedgerError):
    def __init__(self, holder: PubKey, asset: AssetId, balance: Amount, needed: Amount) -> None:
        self.holder = holder
        self.asset = asset
        self.balance = balance
        self.needed = needed
        super().__init__(f"insufficient balance of {asset} for {holder}: {balance} < {needed}")


@dataclass
class MintInfo:
    mint: AssetId
    authority: Optional[PubKey]
    decimals: int
    supply: Amount = 0


@dataclass(frozen=True)
class Transfer:
    asset: AssetId
    source: PubKey
    dest: PubKey
    amount: Amount


@dataclass(frozen=True)
class MintTo:
    asset: AssetId
    dest: PubKey
    amount: Amount
    authority: PubKey


@dataclass(frozen=True)
class Burn:
    asset: AssetId
    source: PubKey
    amount: Amount


LedgerOp = Union[Transfer, MintTo, Burn]


def _require_amount(amount: Amount) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise TypeError("amount must be an int")
    if amount < 0:
        raise LedgerError(f"amount must be non-negative: {amount}")


class Ledger:
    """
    Balance table with mint bookkeeping.

    Notes:
    - Zero balances are omitted to keep the table sparse.
    - A mint's `supply` always equals the sum of its holders' balances.
    - The native asset has no mint record and no supply tracking.
    """

    def __init__(self) -> None:
        self._balances: Dict[Tuple[PubKey, AssetId], Amount] = {}
        self._mints: Dict[AssetId, MintInfo] = {}

    # -- reads ---------------------------------------------------------------

    def balance(self, holder: PubKey, asset: AssetId) -> Amount:
        """Balance for (holder, asset). Returns 0 if not found."""
        return self._balances.get((holder, asset), 0)

    def has_mint(self, asset: AssetId) -> bool:
        return asset in self._mints

    def mint_info(self, asset: AssetId) -> MintInfo:
        info = self._mints.get(asset)
        if info is None:
            raise LedgerError(f"unknown mint: {asset}")
        return MintInfo(mint=info.mint, authority=info.authority, decimals=info.decimals, supply=info.supply)

    def supply(self, asset: AssetId) -> Amount:
        return self.mint_info(asset).supply

    def get_all_balances(self) -> Dict[Tuple[PubKey, AssetId], Amount]:
        return dict(self._balances)

    # -- administration ------------------------------------------------------

    def create_mint(self, asset: AssetId, *, authority: Optional[PubKey], decimals: int = 6) -> MintInfo:
        if asset == NATIVE_ASSET:
            raise LedgerError("native asset cannot be a mint")
        if asset in self._mints:
            raise LedgerError(f"mint already exists: {asset}")
        if not isinstance(decimals, int) or isinstance(decimals, bool) or not (0 <= decimals <= 18):
            raise LedgerError(f"decimals must be in [0, 18]: {decimals!r}")
        info = MintInfo(mint=asset, authority=authority, decimals=decimals)
        self._mints[asset] = info
        return info

    def set_native(self, holder: PubKey, amount: Amount) -> None:
        """Fund `holder` with native units (airdrop)."""
        _require_amount(amount)
        self._write(holder, NATIVE_ASSET, amount)

    # -- single operations ---------------------------------------------------

    def transfer(self, asset: AssetId, source: PubKey, dest: PubKey, amount: Amount) -> None:
        self.apply([Transfer(asset=asset, source=source, dest=dest, amount=amount)])

    def mint_to(self, asset: AssetId, dest: PubKey, amount: Amount, *, authority: PubKey) -> None:
        self.apply([MintTo(asset=asset, dest=dest, amount=amount, authority=authority)])

    def burn(self, asset: AssetId, source: PubKey, amount: Amount) -> None:
        self.apply([Burn(asset=asset, source=source, amount=amount)])

    # -- atomic batch --------------------------------------------------------

    def apply(self, ops: Iterable[LedgerOp]) -> None:
        """
        Apply a batch of operations atomically.

        Every operation is validated in order against a scratch view of the
        touched balances and supplies; nothing is written unless all succeed.
        """
        balances: Dict[Tuple[PubKey, AssetId], Amount] = {}
        supplies: Dict[AssetId, Amount] = {}

        def bal(holder: PubKey, asset: AssetId) -> Amount:
            key = (holder, asset)
            return balances[key] if key in balances else self.balance(holder, asset)

        def debit(holder: PubKey, asset: AssetId, amount: Amount) -> None:
            current = bal(holder, asset)
            if current < amount:
                raise InsufficientFunds(holder, asset, current, amount)
            balances[(holder, asset)] = current - amount

        def credit(holder: PubKey, asset: AssetId, amount: Amount) -> None:
            balances[(holder, asset)] = bal(holder, asset) + amount

        for op in ops:
            _require_amount(op.amount)
            if isinstance(op, Transfer):
                if op.asset != NATIVE_ASSET and op.asset not in self._mints:
                    raise LedgerError(f"unknown mint: {op.asset}")
                debit(op.source, op.asset, op.amount)
                credit(op.dest, op.asset, op.amount)
            elif isinstance(op, MintTo):
                info = self._mints.get(op.asset)
                if info is None:
                    raise LedgerError(f"unknown mint: {op.asset}")
                if info.authority is None or info.authority != op.authority:
                    raise LedgerError(f"mint authority mismatch for {op.asset}")
                supplies[op.asset] = supplies.get(op.asset, info.supply) + op.amount
                credit(op.dest, op.asset, op.amount)
            elif isinstance(op, Burn):
                info = self._mints.get(op.asset)
                if info is None:
                    raise LedgerError(f"unknown mint: {op.asset}")
                debit(op.source, op.asset, op.amount)
                supplies[op.asset] = supplies.get(op.asset, info.supply) - op.amount
            else:
                raise TypeError(f"unsupported ledger op: {type(op).__name__}")

        for (holder, asset), amount in balances.items():
            self._write(holder, asset, amount)
        for asset, supply in supplies.items():
            self._mints[asset].supply = supply

    def _write(self, holder: PubKey, asset: AssetId, amount: Amount) -> None:
        if amount == 0:
            self._balances.pop((holder, asset), None)
        else:
            self._balances[(holder, asset)] = amount

    def verify_non_negative(self) -> bool:
        return all(amount >= 0 for amount in self._balances.values())

    def __repr__(self) -> str:
        return f"Ledger({len(self._balances)} balances, {len(self._mints)} mints)"
