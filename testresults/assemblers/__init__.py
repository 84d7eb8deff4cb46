"""Assemblers that rebuild the person hierarchy from export rows.

Each assembler takes an entity and a list of rows and returns a new entity;
inputs are never modified.
"""

from .booklet_logs import assign_booklet_logs_to_person
from .booklets import assign_booklets_to_person
from .matching import does_row_match_person
from .persons import create_person_list
from .unit_logs import assign_unit_logs_to_booklet
from .units import assign_units_to_booklet_and_person

__all__ = [
    "assign_booklet_logs_to_person",
    "assign_booklets_to_person",
    "assign_unit_logs_to_booklet",
    "assign_units_to_booklet_and_person",
    "create_person_list",
    "does_row_match_person",
]
