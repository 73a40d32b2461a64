from __future__ import annotations

import logging

from esper import World

from patternswap.errors import InsufficientGems, NoPatternToReveal, PatternSwapError
from patternswap.events.bus import (
    EVENT_GEMS_CHANGED,
    EVENT_HINT_SHOWN,
    EVENT_PATTERN_REVEALED,
    EVENT_POWER_UP_INSUFFICIENT,
    EVENT_POWER_UP_REJECTED,
    EVENT_POWER_UP_REQUEST,
    EVENT_POWER_UP_USED,
    EVENT_TIME_CHANGED,
    EventBus,
)
from patternswap.systems.hint_advisor import SwapPair
from patternswap.systems.pattern_matcher import session_patterns
from patternswap.systems.session_system import SessionSystem
from patternswap.utils.wallet import get_wallet

logger = logging.getLogger(__name__)

POWER_UP_HINT = "hint"
POWER_UP_TIME_EXTENSION = "time_extension"
POWER_UP_REVEAL_PATTERN = "reveal_pattern"


class PowerUpSystem:
    """Gem-gated session actions.

    Every power-up shares one contract: when the wallet holds fewer gems than the
    level's cost, InsufficientGems is raised and nothing changes; otherwise the cost
    is deducted and the effect applied.
    """

    def __init__(self, world: World, event_bus: EventBus, session_system: SessionSystem):
        self.world = world
        self.event_bus = event_bus
        self.sessions = session_system
        self.event_bus.subscribe(EVENT_POWER_UP_REQUEST, self.on_power_up_request)

    def use_hint(self) -> SwapPair | None:
        """Spend hint_cost gems and return a progressing swap; no charge if none exists."""
        session, config = self._require_playing(POWER_UP_HINT)
        self._check_funds(POWER_UP_HINT, config.hint_cost)
        hint = self.sessions.find_hint()
        if hint is None:
            self.event_bus.emit(EVENT_POWER_UP_REJECTED, kind=POWER_UP_HINT, reason="no_hint_available")
            return None
        self._charge(POWER_UP_HINT, config.hint_cost)
        session.hints_used += 1
        src, dst = hint
        self.event_bus.emit(EVENT_HINT_SHOWN, src=src, dst=dst)
        return hint

    def use_time_extension(self) -> float:
        """Spend time_extension_cost gems for extra seconds; returns the new time remaining."""
        session, config = self._require_playing(POWER_UP_TIME_EXTENSION)
        self._charge(POWER_UP_TIME_EXTENSION, config.time_extension_cost)
        previous = session.time_remaining
        extended = previous + config.time_extension_seconds
        if config.max_time_remaining is not None:
            extended = min(extended, max(previous, config.max_time_remaining))
        session.time_remaining = extended
        self.event_bus.emit(
            EVENT_TIME_CHANGED,
            time_remaining=session.time_remaining,
            delta=session.time_remaining - previous,
            reason=POWER_UP_TIME_EXTENSION,
        )
        return session.time_remaining

    def use_reveal_pattern(self) -> int:
        """Spend reveal_cost gems to highlight the next hidden, incomplete pattern; returns its id."""
        session, config = self._require_playing(POWER_UP_REVEAL_PATTERN)
        candidates = [
            pattern for pattern in session_patterns(self.world)
            if not pattern.revealed and not pattern.completed
        ]
        if not candidates:
            self.event_bus.emit(EVENT_POWER_UP_REJECTED, kind=POWER_UP_REVEAL_PATTERN, reason="nothing_to_reveal")
            raise NoPatternToReveal("every pattern is already revealed or completed")
        self._charge(POWER_UP_REVEAL_PATTERN, config.reveal_cost)
        target = candidates[0]
        target.revealed = True
        self.event_bus.emit(EVENT_PATTERN_REVEALED, pattern_id=target.pattern_id)
        return target.pattern_id

    # ------------------------------------------------------------------

    def _require_playing(self, kind: str):
        try:
            return self.sessions.require_playing()
        except PatternSwapError:
            self.event_bus.emit(EVENT_POWER_UP_REJECTED, kind=kind, reason="session_not_active")
            raise

    def _check_funds(self, kind: str, cost: int) -> None:
        wallet = get_wallet(self.world)
        if not wallet.can_spend(cost):
            self.event_bus.emit(EVENT_POWER_UP_INSUFFICIENT, kind=kind, cost=cost, gems=wallet.gems)
            raise InsufficientGems(cost, wallet.gems)

    def _charge(self, kind: str, cost: int) -> None:
        self._check_funds(kind, cost)
        wallet = get_wallet(self.world)
        wallet.spend(cost)
        logger.debug("power-up %s used for %d gem(s); %d left", kind, cost, wallet.gems)
        if cost:
            self.event_bus.emit(EVENT_GEMS_CHANGED, gems=wallet.gems, delta=-cost, reason=kind)
        self.event_bus.emit(EVENT_POWER_UP_USED, kind=kind, cost=cost, gems=wallet.gems)

    def on_power_up_request(self, sender, **kwargs):
        kind = kwargs.get('kind')
        actions = {
            POWER_UP_HINT: self.use_hint,
            POWER_UP_TIME_EXTENSION: self.use_time_extension,
            POWER_UP_REVEAL_PATTERN: self.use_reveal_pattern,
        }
        action = actions.get(kind)
        if action is None:
            return
        try:
            action()
        except PatternSwapError as exc:
            # Already reported through power_up_insufficient / power_up_rejected.
            logger.debug("power-up %s refused: %s", kind, exc)
