from dataclasses import dataclass

@dataclass(slots=True)
class GemWallet:
    """Soft currency balance that persists across level attempts."""
    gems: int = 0

    def add(self, amount: int) -> None:
        if amount <= 0:
            return
        self.gems += amount

    def can_spend(self, cost: int) -> bool:
        return self.gems >= cost

    def spend(self, cost: int) -> int:
        """Attempt to spend cost; returns the missing amount if insufficient else 0."""
        missing = cost - self.gems
        if missing > 0:
            return missing
        self.gems -= cost
        return 0
