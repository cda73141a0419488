"""Meeting classification and display formatting."""

from nevermiss.meetings.classifier import (
    RelevantView,
    classify,
    menu_bar_title,
    same_time_group,
)

__all__ = [
    "RelevantView",
    "classify",
    "menu_bar_title",
    "same_time_group",
]
