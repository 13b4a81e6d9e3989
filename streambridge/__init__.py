"""Bridge newline-delimited JSON HTTP streams onto observable sequences."""

from streambridge.bridge import StreamBridge
from streambridge.config import BridgeConfig, load_bridge_config
from streambridge.decoders import json_decoder, model_decoder
from streambridge.errors import DecodeError, StreamError, TransportIOError, TransportValidationError
from streambridge.models import (
    Failed,
    Finished,
    RequestDescriptor,
    StreamHandle,
    StreamOutcome,
    StreamState,
)
from streambridge.observable import CallbackObserver, ObservableStream, Observer, Subscription

__version__ = "0.1.0"

__all__ = [
    "BridgeConfig",
    "CallbackObserver",
    "DecodeError",
    "Failed",
    "Finished",
    "ObservableStream",
    "Observer",
    "RequestDescriptor",
    "StreamBridge",
    "StreamError",
    "StreamHandle",
    "StreamOutcome",
    "StreamState",
    "Subscription",
    "TransportIOError",
    "TransportValidationError",
    "json_decoder",
    "load_bridge_config",
    "model_decoder",
]
