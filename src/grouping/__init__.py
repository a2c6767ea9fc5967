"""Mother/child grouping of related voltage dip and swell events."""

from src.grouping.engine import (
    DEFAULT_WINDOW_SEC,
    GroupingError,
    add_children_to_mother_event,
    can_group_events,
    get_grouping_candidates,
    get_grouping_statistics,
    perform_automatic_grouping,
    perform_manual_grouping,
    ungroup_events,
    ungroup_specific_events,
)

__all__ = [
    "DEFAULT_WINDOW_SEC",
    "GroupingError",
    "add_children_to_mother_event",
    "can_group_events",
    "get_grouping_candidates",
    "get_grouping_statistics",
    "perform_automatic_grouping",
    "perform_manual_grouping",
    "ungroup_events",
    "ungroup_specific_events",
]
