"""Cohort module for Pairwise Elo.

A cohort is an independent rating universe. This module builds cohort
definitions and the canonical keys that identify them.

Components:
    - create_definition: New definition with a canonical key
    - make_cohort_key / parse_cohort_key: Key serialization in both directions
    - make_params: Parameter variant factory by kind name
    - pretty_cohort_label: Human-readable description
"""

from .definitions import (
    PARAMS_BY_KIND,
    create_definition,
    definition_from_key,
    make_cohort_key,
    make_params,
    normalise_tag,
    parse_cohort_key,
    pretty_cohort_label,
)

__all__ = [
    "PARAMS_BY_KIND",
    "create_definition",
    "definition_from_key",
    "make_cohort_key",
    "make_params",
    "normalise_tag",
    "parse_cohort_key",
    "pretty_cohort_label",
]
