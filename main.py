#!/usr/bin/env python3
"""
main.py — Quick-start entry point.

    python main.py generate photo.jpg --width 60 --height 40 --png out/dice.png

Or use the installed CLI:

    dice-mosaic generate --help
    dice-mosaic faces --theme black
"""

from dice_mosaic.cli import app

if __name__ == "__main__":
    app()
