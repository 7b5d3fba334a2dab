"""
Exception types for NURBS geometry and dof management.

Two classes of failure exist:
- structural inconsistencies of the input (topology, knot vectors, sections)
- precondition violations by the caller (bad direction, degree too high, ...)

Both derive from ValueError so that generic argument checks keep working.
"""


class NURBSError(Exception):
    """Base class for all errors raised by watfNURBS."""


class NURBSTopologyError(NURBSError, ValueError):
    """
    Structural inconsistency of patches, knot vectors or input sections.

    Raised for edge/knot orientation mismatches, incompatible periodic
    boundary pairs, malformed text sections and dimension mismatches.
    """


class NURBSConfigurationError(NURBSError, ValueError):
    """
    Precondition violation: invalid direction index, negative counts,
    degree above the supported maximum, unknown configuration keys.
    """
