"""Plan modification rules - rescheduling pending installments and status transitions"""

from typing import Dict, List

from installment_planner.domain.exceptions import InvalidPlanModification, InvalidPlanRequest, InvalidStatusTransition
from installment_planner.domain.installments import due_date_for, parse_frequency
from installment_planner.domain.models import (
    Frequency,
    InstallmentLine,
    InstallmentState,
    InstallmentStatus,
    ModificationType,
    PlanStatus,
    ScheduleChange,
)

# target status -> audit entry it produces, per current status
STATUS_TRANSITIONS: Dict[PlanStatus, Dict[PlanStatus, ModificationType]] = {
    PlanStatus.ACTIVE: {
        PlanStatus.CANCELLED: ModificationType.CANCELLATION,
        PlanStatus.DEFAULTED: ModificationType.DEFAULT,
    },
    PlanStatus.DEFAULTED: {
        PlanStatus.ACTIVE: ModificationType.REACTIVATION,
        PlanStatus.CANCELLED: ModificationType.CANCELLATION,
    },
}


def ensure_modifiable(plan_status: PlanStatus | str) -> None:
    if PlanStatus(plan_status) != PlanStatus.ACTIVE:
        raise InvalidStatusTransition(
            f"لا يمكن تعديل خطة غير نشطة / Only active plans can be modified (status: {PlanStatus(plan_status).value})"
        )


def validate_status_transition(current: PlanStatus | str, target: PlanStatus | str) -> ModificationType:
    """Return the audit type for a legal transition, raise otherwise"""
    try:
        target = PlanStatus(target)
    except ValueError as e:
        raise InvalidPlanModification(f"Unrecognized plan status: {target!r}") from e

    current = PlanStatus(current)
    modification_type = STATUS_TRANSITIONS.get(current, {}).get(target)
    if modification_type is None:
        raise InvalidStatusTransition(f"Cannot move plan from {current.value} to {target.value}")
    return modification_type


def _check_schedule(lines: List[InstallmentLine], total_cents: int) -> List[InstallmentLine]:
    if sum(line.amount_cents for line in lines) != total_cents:
        raise InvalidPlanModification("Installment amounts must add up to the plan total")
    for earlier, later in zip(lines, lines[1:]):
        if later.due_date <= earlier.due_date:
            raise InvalidPlanModification(
                f"Due date of installment {later.installment_number} must be after installment {earlier.installment_number}"
            )
    return lines


def apply_schedule_changes(
    schedule: Dict[int, InstallmentState],
    changes: List[ScheduleChange],
    total_cents: int,
) -> List[InstallmentLine]:
    """
    Build the full schedule with ``changes`` applied to pending installments.

    ``schedule`` maps installment number to current state. The result must
    still sum to ``total_cents`` with strictly increasing due dates; partly
    paid, paid and overdue installments cannot be changed.
    """
    if not changes:
        raise InvalidPlanModification("No schedule changes requested")

    requested: Dict[int, ScheduleChange] = {}
    for change in changes:
        if change.installment_number in requested:
            raise InvalidPlanModification(f"Installment {change.installment_number} changed more than once")
        state = schedule.get(change.installment_number)
        if state is None:
            raise InvalidPlanModification(f"Plan has no installment {change.installment_number}")
        if state.status != InstallmentStatus.PENDING or state.paid_amount_cents:
            raise InvalidPlanModification(
                f"Installment {change.installment_number} is {state.status.value} and cannot be changed"
            )
        if change.amount_cents is not None and change.amount_cents <= 0:
            raise InvalidPlanModification("Installment amounts must be greater than zero")
        requested[change.installment_number] = change

    lines = []
    for number in sorted(schedule):
        state = schedule[number]
        change = requested.get(number)
        amount_cents = state.amount_cents
        due_date = state.due_date
        if change is not None:
            if change.amount_cents is not None:
                amount_cents = change.amount_cents
            if change.due_date is not None:
                due_date = change.due_date
        lines.append(InstallmentLine(installment_number=number, amount_cents=amount_cents, due_date=due_date))

    return _check_schedule(lines, total_cents)


def change_frequency(
    schedule: Dict[int, InstallmentState],
    current_frequency: Frequency | str,
    new_frequency: Frequency | str,
) -> List[InstallmentLine]:
    """Re-date pending installments at ``new_frequency`` from the first pending due date"""
    try:
        frequency = parse_frequency(new_frequency)
    except InvalidPlanRequest as e:
        raise InvalidPlanModification(str(e)) from e
    if frequency == Frequency(current_frequency):
        raise InvalidPlanModification(f"Plan is already {frequency.value}")

    pending = [n for n in sorted(schedule) if schedule[n].status == InstallmentStatus.PENDING]
    if not pending:
        raise InvalidPlanModification("Plan has no pending installments to reschedule")
    # Pending lines must be the tail of the schedule
    if pending != sorted(schedule)[-len(pending):]:
        raise InvalidPlanModification("Frequency can only change when the pending installments come after all others")

    anchor = schedule[pending[0]].due_date
    new_dates = {number: due_date_for(anchor, frequency, i) for i, number in enumerate(pending)}

    lines = [
        InstallmentLine(
            installment_number=number,
            amount_cents=schedule[number].amount_cents,
            due_date=new_dates.get(number, schedule[number].due_date),
        )
        for number in sorted(schedule)
    ]
    return _check_schedule(lines, sum(state.amount_cents for state in schedule.values()))
