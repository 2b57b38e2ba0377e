"""Dispatch core and the FluxServer facade."""

from .dispatch import Dispatcher, bind_arguments
from .server import FluxServer

__all__ = ["Dispatcher", "FluxServer", "bind_arguments"]
