"""Per-domain third-party cookie isolation."""
