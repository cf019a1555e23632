"""Concrete process units built on ``contextkernel.core``."""
