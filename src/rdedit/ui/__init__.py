from .console import Console, get_console, set_console
from .prompts import Prompter

__all__ = ["Console", "get_console", "set_console", "Prompter"]
