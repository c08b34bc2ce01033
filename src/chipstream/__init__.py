"""chipstream: streaming event parser for the chip authenticity assistant."""

__version__ = "0.1.0"
