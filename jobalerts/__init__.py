"""Job alert matching and notification engine for the ZimPharmHub job board."""

__version__ = "1.0.0"
