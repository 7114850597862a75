"""
Set Reconciler

Compares the fetched universe with the symbols currently active in
symbol_master. Only identifiers are compared: a symbol whose MIC changed is
unchanged, not delisted and re-added.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List

from shared.models.finnhub import FinnhubSymbol


@dataclass(frozen=True)
class ReconciliationResult:
    """Additions and removals between the universe and the active set"""

    new_symbols: List[FinnhubSymbol] = field(default_factory=list)
    delisted_symbols: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def is_empty(self) -> bool:
        return not self.new_symbols and not self.delisted_symbols


def reconcile(
    universe: Iterable[FinnhubSymbol],
    active_symbols: Iterable[str]
) -> ReconciliationResult:
    """
    Compute new = universe - active and delisted = active - universe

    Duplicate identifiers in the universe collapse to the last entry seen.
    """
    by_symbol: Dict[str, FinnhubSymbol] = {}
    for entry in universe:
        by_symbol[entry.symbol] = entry

    active = frozenset(active_symbols)

    new_symbols = [entry for symbol, entry in by_symbol.items() if symbol not in active]
    delisted_symbols = active.difference(by_symbol)

    return ReconciliationResult(
        new_symbols=new_symbols,
        delisted_symbols=frozenset(delisted_symbols),
    )
