from .host import TextualHost
from .panel import MenuPanel
from .prompts import ConfirmScreen
from .status import StatusManager

__all__ = ["ConfirmScreen", "MenuPanel", "StatusManager", "TextualHost"]
