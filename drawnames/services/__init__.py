from .events import authenticate, create_event, get_event, join_event, remove_participant
from .exclusions import check_feasibility, configure_exclusions, exclusion_overview
from .lifecycle import assign, lock, unlock
from .reveals import Reveal, reveal, reveal_progress

__all__ = [
    "Reveal",
    "assign",
    "authenticate",
    "check_feasibility",
    "configure_exclusions",
    "create_event",
    "exclusion_overview",
    "get_event",
    "join_event",
    "lock",
    "remove_participant",
    "reveal",
    "reveal_progress",
    "unlock",
]
