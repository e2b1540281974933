"""
Colored CLI output utilities for fitsview.

Provides styled terminal output with colors, progress bars, and a text
rendering of the display histogram.

Author: Olivier Vitrac, PhD, HDR
        Generative Simulation Initiative
        olivier.vitrac@gmail.com
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass

from colorama import Fore, Style, init as colorama_init
from tqdm import tqdm

# Initialize colorama for cross-platform support
colorama_init(autoreset=True)


class Colors:
    """Color constants for consistent styling."""

    HEADER = Fore.CYAN + Style.BRIGHT
    SUCCESS = Fore.GREEN + Style.BRIGHT
    WARNING = Fore.YELLOW
    ERROR = Fore.RED + Style.BRIGHT
    INFO = Fore.WHITE
    VALUE = Fore.YELLOW + Style.BRIGHT
    METRIC = Fore.MAGENTA
    PATH = Fore.CYAN
    PROGRESS = Fore.GREEN
    BAR = Fore.BLUE + Style.BRIGHT
    RESET = Style.RESET_ALL


class Symbols:
    """Unicode symbols for status indicators."""

    CHECK = "\u2714"  # ✔
    CROSS = "\u2718"  # ✘
    ARROW = "\u2192"  # →
    BULLET = "\u2022"  # •
    BLOCK = "\u2588"  # █

    @classmethod
    def use_ascii(cls):
        """Switch to ASCII-only fallbacks."""
        cls.CHECK = "[OK]"
        cls.CROSS = "[X]"
        cls.ARROW = "->"
        cls.BULLET = "*"
        cls.BLOCK = "#"


def print_banner(version: str) -> None:
    """Print the fitsview startup banner."""
    print(f"{Colors.HEADER}fitsview {version} | FITS debayer & stretch previewer{Colors.RESET}")


def print_header(text: str, width: int = 60) -> None:
    """Print a styled section header."""
    line = "=" * width
    print(f"\n{Colors.HEADER}{line}")
    print(f"  {text}")
    print(f"{line}{Colors.RESET}")


def print_success(text: str) -> None:
    """Print a success message."""
    print(f"{Colors.SUCCESS}{Symbols.CHECK} {text}{Colors.RESET}")


def print_warning(text: str) -> None:
    """Print a warning message."""
    print(f"{Colors.WARNING}! {text}{Colors.RESET}")


def print_error(text: str) -> None:
    """Print an error message to stderr."""
    print(f"{Colors.ERROR}{Symbols.CROSS} {text}{Colors.RESET}", file=sys.stderr)


def print_info(text: str) -> None:
    """Print an info message."""
    print(f"{Colors.INFO}{Symbols.BULLET} {text}{Colors.RESET}")


def print_metric(name: str, value: str | int | float, unit: str = "") -> None:
    """Print a metric with value."""
    suffix = f" {unit}" if unit else ""
    print(f"  {Colors.METRIC}{name}: {Colors.VALUE}{value}{Colors.RESET}{suffix}")


def print_path(label: str, path: str) -> None:
    """Print a file path."""
    print(f"  {Colors.INFO}{label}: {Colors.PATH}{path}{Colors.RESET}")


def format_histogram(hist, width: int = 40, rows: int = 16) -> list[str]:
    """
    Render a display histogram as horizontal text bars.

    Parameters
    ----------
    hist : array-like
        Bin values in [0, 1] (peak-normalized).
    width : int, default 40
        Length of a full bar.
    rows : int, default 16
        Number of output lines; adjacent bins are merged by max.

    Returns
    -------
    list[str]
        One line per row, labelled with its intensity range.
    """
    values = [float(v) for v in hist]
    n = len(values)
    if n == 0:
        return []

    rows = max(1, min(rows, n))
    lines = []
    for r in range(rows):
        start = r * n // rows
        stop = max((r + 1) * n // rows, start + 1)
        level = max(values[start:stop])
        bar = Symbols.BLOCK * int(round(level * width))
        lines.append(f"{start / n:4.2f}-{stop / n:4.2f} | {bar}")
    return lines


def print_histogram(hist, width: int = 40, rows: int = 16) -> None:
    """Print a display histogram as horizontal text bars."""
    for line in format_histogram(hist, width, rows):
        label, _, bar = line.partition("| ")
        print(f"  {Colors.METRIC}{label}| {Colors.BAR}{bar}{Colors.RESET}")


def format_duration(seconds: float) -> str:
    """Format duration in human-readable form."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds // 60)
    return f"{minutes}m {seconds % 60:.0f}s"


@dataclass
class ProgressConfig:
    """Configuration for progress bars."""

    bar_format: str = "{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}]"
    ncols: int = 80
    colour: str = "green"
    leave: bool = True


def create_progress_bar(
    total: int,
    desc: str,
    unit: str = "file",
    config: ProgressConfig | None = None,
    disable: bool = False,
) -> tqdm:
    """
    Create a styled progress bar.

    Parameters
    ----------
    total : int
        Total number of items.
    desc : str
        Description text.
    unit : str, default "file"
        Unit name for items.
    config : ProgressConfig, optional
        Progress bar configuration.
    disable : bool, default False
        Disable the progress bar.

    Returns
    -------
    tqdm
        Configured progress bar.
    """
    if config is None:
        config = ProgressConfig()

    return tqdm(
        total=total,
        desc=f"{Colors.PROGRESS}{desc}{Colors.RESET}",
        unit=unit,
        bar_format=config.bar_format,
        ncols=config.ncols,
        colour=config.colour,
        leave=config.leave,
        disable=disable,
    )


def setup_terminal() -> bool:
    """
    Switch to ASCII symbols when the terminal is unlikely to render unicode.

    Returns
    -------
    bool
        True if unicode symbols are kept.
    """
    unicode_ok = True
    if os.environ.get("TERM") == "dumb":
        unicode_ok = False
    elif "utf" not in (sys.stdout.encoding or "").lower():
        unicode_ok = False

    if not unicode_ok:
        Symbols.use_ascii()
    return unicode_ok
