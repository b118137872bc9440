from .reading import SensorReading, FrameBuffer, ZERO_READING
from .endpoint import Endpoint, DEFAULT_PORT
from .codec import OutboundMessage, encode_message, decode_message

__all__ = ["SensorReading",
           "FrameBuffer",
           "ZERO_READING",
           "Endpoint",
           "DEFAULT_PORT",
           "OutboundMessage",
           "encode_message",
           "decode_message"]
