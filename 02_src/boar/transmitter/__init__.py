"""Transmitter module."""

from .transmitter import FailureHook, ITransmitter, Transmitter, serialize_batch

__all__ = ["FailureHook", "ITransmitter", "Transmitter", "serialize_batch"]
