"""Guest metadata collection from French media archives."""

__version__ = "0.1.0"
