"""Rotation resolver.

Maps a local date, a rotation rule, and a roster to the member ids
responsible on that date. The result depends only on the arguments, so
past and future dates resolve the same way whenever they are computed.
"""

from __future__ import annotations

from datetime import date

from ..domain.models import (
    RotationCadence,
    RotationDefaults,
    RotationMode,
    Team,
    TeamMember,
)

_CADENCE_DAYS = {
    RotationCadence.DAILY: 1,
    RotationCadence.WEEKLY: 7,
}


def enabled_members(team: Team) -> list[TeamMember]:
    """Enabled members in rotation order: ``(order, user_id)``."""
    return sorted(
        (m for m in team.members if m.enabled),
        key=lambda m: (m.order, m.user_id),
    )


def interval_days_for(team: Team, rotation: RotationDefaults) -> int:
    if team.rotation_interval_days is not None and team.rotation_interval_days > 0:
        return team.rotation_interval_days
    cadence = team.cadence_override or rotation.cadence
    return _CADENCE_DAYS.get(cadence, 1)


def resolve_members(team: Team, rotation: RotationDefaults, local_date: date) -> list[str]:
    """Return the ordered member ids responsible for ``local_date``.

    ``WholeTeam`` returns every enabled member. ``RollingIndividual``
    returns one member, advancing one position every ``interval_days``
    from ``(anchor_date, anchor_index)``. An empty roster yields ``[]``;
    the caller decides the fallback.
    """
    members = enabled_members(team)
    if not members:
        return []

    mode = team.mode_override or rotation.mode
    if mode is RotationMode.WHOLE_TEAM:
        return [m.user_id for m in members]

    interval_days = interval_days_for(team, rotation)
    anchor_date = rotation.anchor_date or local_date
    anchor_index = max(rotation.anchor_index, 0)

    # Floor division keeps dates before the anchor on the right step.
    increments = (local_date - anchor_date).days // interval_days
    index = (anchor_index + increments) % len(members)
    return [members[index].user_id]
