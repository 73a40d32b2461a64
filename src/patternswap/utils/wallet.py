from __future__ import annotations

from esper import World

from patternswap.components.gem_wallet import GemWallet
from patternswap.events.bus import EVENT_GEMS_CHANGED, EventBus


def get_wallet(world: World) -> GemWallet:
    for _, wallet in world.get_component(GemWallet):
        return wallet
    wallet = GemWallet()
    world.create_entity(wallet)
    return wallet


def grant_gems(world: World, event_bus: EventBus, amount: int, *, reason: str) -> int:
    """Credit gems and emit a change event; returns the new balance."""
    wallet = get_wallet(world)
    if amount <= 0:
        return wallet.gems
    wallet.add(amount)
    event_bus.emit(EVENT_GEMS_CHANGED, gems=wallet.gems, delta=amount, reason=reason)
    return wallet.gems
