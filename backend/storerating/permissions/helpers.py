# Overview: Utility functions for operation lookups and validation.

from .definitions import PERMISSION_DEFINITIONS

def get_all_permission_codes():
    """Get list of all operation codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]

def get_permission_definition(code):
    """Get full definition for an operation code."""
    for perm in PERMISSION_DEFINITIONS:
        if perm[0] == code:
            return {
                "code": perm[0],
                "name": perm[1],
                "description": perm[2],
                "category": perm[3],
                "ownership_rule": perm[4],
            }
    return None

def get_ownership_rule(code):
    definition = get_permission_definition(code)
    if definition is None:
        raise ValueError(f"Unknown operation: {code}")
    return definition["ownership_rule"]
