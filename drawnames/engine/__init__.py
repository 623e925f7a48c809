from .exclusions import ExclusionModel
from .feasibility import FEASIBLE, MIN_PARTICIPANTS, Feasibility, check_feasibility
from .generator import Assignment, generate_assignment

__all__ = [
    "Assignment",
    "ExclusionModel",
    "FEASIBLE",
    "Feasibility",
    "MIN_PARTICIPANTS",
    "check_feasibility",
    "generate_assignment",
]
