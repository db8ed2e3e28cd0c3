"""Electronic signature compliance engine (ESIGN Act / UETA)."""

__version__ = "1.0.0"
