"""chekprint - receipt layout and command encoding for thermal printers."""

__version__ = "0.1.0"
