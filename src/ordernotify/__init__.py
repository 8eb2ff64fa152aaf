"""Order lifecycle notifications over the WhatsApp Cloud API."""

__version__ = "0.1.0"
