"""Poll a quote endpoint on a fixed schedule and print each quote."""

__version__ = "0.1.0"
