"""Contact form API: validated, rate-limited form submissions with email auto-replies."""

__version__ = "0.1.0"
