"""
Keyframe timeline engine.
Provides the timeline data model, keyframe interpolation, layer groups and
playback scheduling.
"""

from .errors import (
    TimelineError,
    NotFoundError,
    InvalidReferenceError,
    CyclicGroupError,
    InvalidTimeRangeError,
    MalformedSerializedStateError,
    UnparseableColor,
)
from .events import ChangeEvent, ChangeKind, ChangeNotifier
from .models import CascadePolicy, Keyframe, MotionTween, Layer, KeyframeHit, ObjectState, IndentedLayer
from .timeline_model import TimelineModel
from .groups import GroupHierarchy
from .playback import PlaybackScheduler, PlaybackState
from .interpolation import PropertyInterpolator, PropertyKind, PropertyValue
from .color import ColorInterpolator, Rgba, parse_color
from .easing import EASING_FUNCTIONS, apply_easing, get_easing
from .config import TimelineSettings, get_settings

__all__ = [
    'TimelineModel',
    'GroupHierarchy',
    'PlaybackScheduler',
    'PlaybackState',
    'Layer',
    'Keyframe',
    'MotionTween',
    'CascadePolicy',
    'KeyframeHit',
    'ObjectState',
    'IndentedLayer',
    'ChangeEvent',
    'ChangeKind',
    'ChangeNotifier',
    'PropertyInterpolator',
    'PropertyKind',
    'PropertyValue',
    'ColorInterpolator',
    'Rgba',
    'parse_color',
    'EASING_FUNCTIONS',
    'apply_easing',
    'get_easing',
    'TimelineSettings',
    'get_settings',
    'TimelineError',
    'NotFoundError',
    'InvalidReferenceError',
    'CyclicGroupError',
    'InvalidTimeRangeError',
    'MalformedSerializedStateError',
    'UnparseableColor',
]
