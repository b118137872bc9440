from .state import SessionPhase, SessionState, SessionStats
from .sensor_feed import SensorFeed
from .frame_source import FrameSource
from .scheduler import CadenceScheduler
from .session import StreamingSession
from .connection import ConnectionManager

__all__ = ["SessionPhase",
           "SessionState",
           "SessionStats",
           "SensorFeed",
           "FrameSource",
           "CadenceScheduler",
           "StreamingSession",
           "ConnectionManager"]
