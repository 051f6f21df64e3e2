"""termx - a tool-using coding assistant for the terminal."""

__version__ = "0.1.0"

from termx.config import Config
from termx.main import app

__all__ = ["Config", "app", "__version__"]
