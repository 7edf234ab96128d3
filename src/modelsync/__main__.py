"""
modelsync CLI entry point.

Usage:
    python -m modelsync copy llama3 http://gpu-box:11434/llama3
"""

from modelsync.cli import main

if __name__ == "__main__":
    main()
