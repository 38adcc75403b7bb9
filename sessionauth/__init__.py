"""sessionauth: username/password registration and signed-cookie sessions."""

__version__ = "0.1.0"
