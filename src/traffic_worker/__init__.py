"""Traffic camera job loop: partition cameras into chunks, count vehicles, record counts."""

__version__ = "0.1.0"
