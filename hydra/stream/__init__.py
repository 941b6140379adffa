"""NDJSON stream decoding and the per-session stream controller."""

from hydra.stream.controller import CancellationToken, StreamController, Subscription
from hydra.stream.decoder import FrameDecoder, decode_frames

__all__ = [
    "CancellationToken",
    "FrameDecoder",
    "StreamController",
    "Subscription",
    "decode_frames",
]
