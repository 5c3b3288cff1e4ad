"""Dispatcher module."""

from .dispatcher import Dispatcher, IDispatcher

__all__ = ["Dispatcher", "IDispatcher"]
