"""
UMKM Strategi: strategy planner for Indonesian small businesses.

Application entry point.

Usage:
    python app.py

    Then open http://localhost:7860 in a browser.
"""

import logging
import sys

from config import settings

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format='%(asctime)s | %(levelname)s | %(name)s | %(message)s',
    datefmt='%H:%M:%S',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

# Less noise from libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("openai").setLevel(logging.WARNING)
logging.getLogger("gradio").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


def main():
    """Starts the app."""
    import gradio as gr
    from ui.components import create_app
    from ui.styles import CUSTOM_CSS

    logger.info("=" * 50)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info("=" * 50)

    app = create_app()

    app.launch(
        server_name="0.0.0.0",
        server_port=7860,
        share=False,
        show_error=True,
        css=CUSTOM_CSS,
        theme=gr.themes.Soft(
            primary_hue="emerald",
            secondary_hue="slate",
            neutral_hue="slate",
        )
    )


if __name__ == "__main__":
    main()
