"""netpinger: edge-triggered connectivity monitoring."""

__version__ = "0.1.0"
