"""Timeline feature - trail playback over correlated locations.

Provides the windowed working sequence, timer-driven playback, and the tab
showing the trail drawn so far.
"""

from .state import TimelineState
from .controller import TimelineController
from .tab import TimelineTab
from .models import TrailTableModel

__all__ = ["TimelineState", "TimelineController", "TimelineTab", "TrailTableModel"]
