"""Lead conversion scoring: session reconstruction, encoding, training and serving."""

__version__ = "0.1.0"
