from .controller import PendingUpgrade, UpgradeController

__all__ = ["PendingUpgrade", "UpgradeController"]
