"""
Entry point for the NeuroLearn CLI.

Run with:
    python main.py study
    python main.py --help
"""
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from src.cli.neurolearn_cli import run

if __name__ == "__main__":
    run()
