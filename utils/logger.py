# utils/logger.py

import sys

COLORS = {
    "info": "\033[94m",    # Синий
    "step": "\033[96m",    # Голубой
    "warn": "\033[93m",    # Желтый
    "error": "\033[91m",   # Красный
    "ok": "\033[92m"       # Зеленый
}
RESET = "\033[0m"


def log(text, level="info"):
    color = COLORS.get(level, RESET)
    stream = sys.stderr if level == "error" else sys.stdout
    print(f"{color}[{level.upper()}] {text}{RESET}", file=stream, flush=True)
