"""Hypothesis strategies for property testing.

Provides reusable strategies for role lists and requirement lists drawn
from the reference role table, mixed with unknown and malformed entries.
"""

from hypothesis import strategies as st

from src.facility_authz.auth.enums import VALID_PERMISSIONS, VALID_ROLES

KNOWN_ROLES = sorted(VALID_ROLES)
KNOWN_PERMISSIONS = sorted(VALID_PERMISSIONS)


def known_roles():
    """A single role from the reference table."""
    return st.sampled_from(KNOWN_ROLES)


def known_permissions():
    """A single permission some role grants."""
    return st.sampled_from(KNOWN_PERMISSIONS)


def unknown_roles():
    """Strings that are not roles in the reference table."""
    return st.text(min_size=0, max_size=20).filter(lambda s: s not in VALID_ROLES)


def any_role():
    """Known or unknown role strings."""
    return st.one_of(known_roles(), unknown_roles())


def role_lists(max_size: int = 8):
    """Role lists as delivered by an identity source, duplicates allowed."""
    return st.lists(any_role(), max_size=max_size)


def permission_lists(max_size: int = 6):
    """Requirement lists mixing granted and unknown permission strings."""
    return st.lists(
        st.one_of(known_permissions(), st.text(max_size=20)), max_size=max_size
    )


@st.composite
def malformed_role_lists(draw):
    """Role lists polluted with non-string values."""
    junk = st.one_of(
        st.none(),
        st.integers(),
        st.lists(known_roles(), max_size=2),
        st.dictionaries(st.text(max_size=3), st.integers(), max_size=2),
    )
    return draw(st.lists(st.one_of(any_role(), junk), max_size=8))
