"""
MyPlanner: schedule conflict detection and backend mutation coordination
for a personal academic planner.
"""

from myplanner.conflicts import overlaps, partition, scan
from myplanner.mutation import MutationCoordinator, MutationOptions, MutationState

__all__ = [
    "overlaps",
    "scan",
    "partition",
    "MutationCoordinator",
    "MutationOptions",
    "MutationState",
]
