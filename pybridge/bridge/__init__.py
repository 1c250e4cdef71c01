"""Execution bridge: dispatcher, control-channel loop and worker entry."""

from pybridge.bridge.dispatcher import Dispatcher
from pybridge.bridge.loop import ControlChannelLoop
from pybridge.bridge.worker import build_dispatcher, run_worker

__all__ = ["ControlChannelLoop", "Dispatcher", "build_dispatcher", "run_worker"]
