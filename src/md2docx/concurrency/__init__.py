"""Concurrency — bounded settle-all dispatch for image resolution."""

from md2docx.concurrency.pool import ConcurrencyPool

__all__ = ["ConcurrencyPool"]
