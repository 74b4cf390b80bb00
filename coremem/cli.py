import logging
import sys
from pathlib import Path

from cyclopts import App
from dotenv import load_dotenv

from coremem.config import load_settings
from coremem.memory.cli import app as memory_app

app = App(name="coremem", help="Persistent memory blocks for coding agents")
app.command(memory_app, name="memory")

load_dotenv()


def main():
    settings = load_settings(project_root=Path.cwd())
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    sys.exit(app())
