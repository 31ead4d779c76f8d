"""
Gold movements during settlement.
Every transfer saturates at the payer's balance and is written to the audit log as SettlementEntry records.
"""

import logging

from backend.engine import BANK, TREASURY
from backend.engine.state import GameState, PlayerState, SettlementEntry

logger = logging.getLogger(__name__)

DEMOLISHED = "demolished"


def demolished_ids(entries: list[SettlementEntry]) -> list[str]:
    """Buildings demolished during a settlement, in the order they were taken."""
    prefix = f"{DEMOLISHED}:"
    return [e.reason[len(prefix):] for e in entries if e.reason.startswith(prefix)]


class Ledger:
    """
    Applies gold movements to a GameState and records one entry per side.
    planned_demolitions, when given, replaces random demolition picks with logged ones (replays).
    """

    def __init__(self, state: GameState, planned_demolitions: list[str] | None = None):
        self.state = state
        self.entries: list[SettlementEntry] = []
        self.planned_demolitions = list(planned_demolitions) if planned_demolitions is not None else None

    def _record(
        self,
        player: PlayerState,
        delta: int,
        reason: str,
        counterparty: str,
        nominal: int | None = None,
    ) -> None:
        self.entries.append(SettlementEntry(player.id, delta, reason, counterparty, nominal))

    def mint(self, player: PlayerState, amount: int, reason: str) -> int:
        """Building income and stipends paid by the bank. Returns the amount paid."""
        if amount <= 0:
            return 0
        player.gold += amount
        self._record(player, amount, reason, BANK)
        return amount

    def transfer(self, payer: PlayerState, payee: PlayerState, amount: int, reason: str) -> int:
        """
        Move up to `amount` from payer to payee. Returns what was actually paid.
        A short payer's entry carries the nominal amount so callers can act on the shortfall.
        """
        if amount <= 0:
            return 0
        paid = min(amount, payer.gold)
        payer.gold -= paid
        payee.gold += paid
        nominal = amount if paid < amount else None
        self._record(payer, -paid, reason, payee.id, nominal)
        if paid > 0:
            self._record(payee, paid, reason, payer.id)
        return paid

    def pay_treasury(self, payer: PlayerState, amount: int, reason: str) -> int:
        if amount <= 0:
            return 0
        paid = min(amount, payer.gold)
        payer.gold -= paid
        self.state.treasury += paid
        self._record(payer, -paid, reason, TREASURY, amount if paid < amount else None)
        return paid

    def draw_treasury(self, player: PlayerState, amount: int, reason: str) -> int:
        """Pay up to `amount` out of the treasury; the treasury never goes negative."""
        if amount <= 0:
            return 0
        paid = min(amount, self.state.treasury)
        if paid <= 0:
            return 0
        self.state.treasury -= paid
        player.gold += paid
        self._record(player, paid, reason, TREASURY)
        return paid

    def note(self, player: PlayerState, reason: str) -> None:
        """Zero-delta record for non-gold effects (tokens, flags, demolition)."""
        self._record(player, 0, reason, BANK)

    def demolish(self, player: PlayerState, building_id: str) -> None:
        """Return one owned instance to the shared inventory."""
        player.buildings.remove(building_id)
        self.state.inventory[building_id] = self.state.inventory.get(building_id, 0) + 1
        logger.debug("Demolished %s owned by %s", building_id, player.id)
        self.note(player, f"{DEMOLISHED}:{building_id}")
