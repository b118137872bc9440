from .camera import Camera
from .motion_source import MotionSource, ReadingCallback
from .cycle_sink import CycleEvent, CycleSink

__all__ = ["Camera",
           "MotionSource",
           "ReadingCallback",
           "CycleEvent",
           "CycleSink"]
