"""upsweep — update every package manager and dev tool in one run."""

__version__ = "0.1.0"
