"""
Side-by-side column layout for overlapping appointments of one employee/day.

Appointments are grouped into clusters connected by direct or transitive
overlap. Inside a cluster each appointment takes the first column that is
free at its start; all members of a cluster share the cluster's column
count so they render with the same width.

Example:
    09:00-10:00, 09:30-10:30, 10:30-11:00
    -> cluster 0: columns 0 and 1 of 2
    -> cluster 1: column 0 of 1
"""

from typing import List, Sequence

from .exceptions import InvalidInputError
from .models import BookedInterval, LayoutAssignment


def layout(appointments: Sequence[BookedInterval]) -> List[LayoutAssignment]:
    """
    Assign a column and a column count to every appointment.

    No appointment is dropped; in the worst case each one gets its own
    column. The result follows start-time order (ties by appointment id).

    Raises:
        InvalidInputError: If an appointment has no id or ids repeat
    """
    _validate_ids(appointments)

    ordered = sorted(appointments, key=lambda appt: (appt.start, appt.appointment_id))

    assignments: List[LayoutAssignment] = []
    for cluster_index, cluster in enumerate(_clusters(ordered)):
        columns = _assign_columns(cluster)
        total_columns = max(columns) + 1
        assignments.extend(
            LayoutAssignment(
                appointment_id=appt.appointment_id,
                column=column,
                total_columns=total_columns,
                cluster=cluster_index,
            )
            for appt, column in zip(cluster, columns)
        )

    return assignments


def _clusters(ordered: Sequence[BookedInterval]) -> List[List[BookedInterval]]:
    """
    Split start-ordered appointments into overlap-connected clusters.

    With the input sorted by start, an appointment joins the running
    cluster exactly when it starts before the latest end seen so far.
    """
    clusters: List[List[BookedInterval]] = []
    cluster_end = None

    for appt in ordered:
        if clusters and appt.start < cluster_end:
            clusters[-1].append(appt)
            cluster_end = max(cluster_end, appt.end)
        else:
            clusters.append([appt])
            cluster_end = appt.end

    return clusters


def _assign_columns(cluster: Sequence[BookedInterval]) -> List[int]:
    """Greedy first-fit: reuse the first column whose last end is <= start."""
    column_ends = []
    columns: List[int] = []

    for appt in cluster:
        for index, column_end in enumerate(column_ends):
            if column_end <= appt.start:
                column_ends[index] = appt.end
                columns.append(index)
                break
        else:
            column_ends.append(appt.end)
            columns.append(len(column_ends) - 1)

    return columns


def _validate_ids(appointments: Sequence[BookedInterval]) -> None:
    seen = set()
    for appt in appointments:
        if not appt.appointment_id:
            raise InvalidInputError(
                f"Appointment {appt.start}-{appt.end} needs an id to be laid out"
            )
        if appt.appointment_id in seen:
            raise InvalidInputError(f"Duplicate appointment id: {appt.appointment_id}")
        seen.add(appt.appointment_id)
