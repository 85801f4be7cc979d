"""
UI module: Gradio app: transaction import and strategy plan views.
"""

from ui.styles import CUSTOM_CSS
from ui.components import create_app

__all__ = [
    "create_app",
    "CUSTOM_CSS",
]
