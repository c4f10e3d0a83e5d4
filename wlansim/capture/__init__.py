"""
wlansim.capture - Frame capture arming and the in-memory capture engine
"""

from wlansim.capture.controller import (
    CaptureController, CaptureError, CaptureRequest, FrameLog, FrameRecord,
)

__all__ = ['CaptureController', 'CaptureError', 'CaptureRequest', 'FrameLog', 'FrameRecord']
