#!/usr/bin/env python3
"""
Example usage of the Revenue Scheduling Engine.

This script demonstrates how the shift calendar, monthly schedules, projection
calculator, submission workflow and underperformance flags work together for
one month.
"""

from datetime import datetime

import pandas as pd

from revenue_scheduling import Period, Role, SchedulableRef, SchedulingEngine
from revenue_scheduling.exceptions import LockedPeriod
from revenue_scheduling.persistence import RecordingCallbacks
from revenue_scheduling.scheduling.models import Division, Employee, HormoneUnit, WeeklySchedule


def main():
    print("=== Revenue Scheduling Demo ===\n")

    # Freeze the clock before the 25th so edits are open
    now = datetime(2025, 3, 10, 9, 0)
    callbacks = RecordingCallbacks()
    engine = SchedulingEngine(callbacks=callbacks, clock=lambda: now)

    # 1. Load reference data
    print("1. Loading reference data...")
    engine.load_divisions([
        Division("laser", "Laser", "#3b82f6"),
        Division("injectables", "Injectables", "#ec4899"),
    ])
    engine.load_employees([
        Employee("e1", "Avery", "laser", ["St. Albert"], "technician", "senior"),
        Employee("e2", "Jordan", "injectables", ["Sherwood Park"], "nurse", "junior"),
    ])
    engine.load_units([HormoneUnit("u1", "Spruce Grove", "Hormone Unit 1", ["np1"], ["sp1"])])

    kpi = pd.DataFrame([
        {"employee_id": "e1", "month": 2, "year": 2025, "productivity_rate": 88,
         "retail_percentage": 18, "attendance_rate": 97, "service_sales_per_hour": 210},
        {"employee_id": "e2", "month": 2, "year": 2025, "productivity_rate": 76,
         "retail_percentage": 8, "attendance_rate": 95, "service_sales_per_hour": 160},
    ])
    print(f"Loaded {engine.load_kpi_dataframe(kpi)} KPI records")

    # 2. Estimate hours from a recurring week
    print("\n2. Estimating monthly hours from a weekly schedule...")
    week = WeeklySchedule()
    for day in ['monday', 'tuesday', 'wednesday', 'thursday']:
        week.set_day(day, "09:00", "17:30")
    print(f"   Weekly: {week.weekly_hours()}h, monthly estimate: {week.monthly_hours()}h")
    schedule = engine.save_monthly_schedule("e1", Period("03", 2025), "mgr1", Role.DIVISION_MANAGER,
                                            weekly_schedule=week, service_sales_per_hour=210,
                                            actual_booked_hours=120)
    print(f"   Avery's March schedule: {schedule.scheduled_hours}h, "
          f"estimated revenue {schedule.estimated_revenue}, "
          f"productivity {schedule.calculated_productivity}%")

    # 3. Enter calendar shifts
    print("\n3. Entering shifts...")
    avery = SchedulableRef.employee("e1")
    for day in ["2025-03-03", "2025-03-04", "2025-03-05"]:
        engine.save_shift(avery, day, "09:00", "17:00", "St. Albert", actor_id="mgr1",
                          role=Role.DIVISION_MANAGER)
    engine.save_shift(SchedulableRef.unit("u1"), "2025-03-03", "10:00", "14:00", "Spruce Grove",
                      actor_id="mgr1", role=Role.DIVISION_MANAGER)
    print(f"   Avery scheduled hours: {callbacks.hours_for('e1')}")
    print(f"   Unit u1 scheduled hours: {callbacks.hours_for('u1', 'unit')}")

    # 4. Projections
    print("\n4. Building projections...")
    march = Period("03", 2025)
    seeded = engine.projection(avery, march)
    print(f"   Seeded goal for Avery: {seeded.total_revenue_goal} "
          f"(productivity {seeded.inputs.estimated_productivity}%)")

    updated = engine.update_projection(avery, march, Role.DIVISION_MANAGER, {"scheduled_hours": 160})
    print(f"   After setting 160h: goal {updated.total_revenue_goal}")
    for scenario in engine.scenarios(avery, march):
        print(f"     {scenario.name}: {scenario.total_revenue}")

    # 5. Submit
    print("\n5. Submitting...")
    submitted = engine.submit_projection(avery, march, "mgr1", Role.DIVISION_MANAGER)
    print(f"   Submitted by {submitted.submitted_by} at {submitted.submitted_at:%Y-%m-%d %H:%M}")
    try:
        engine.update_projection(avery, march, Role.DIVISION_MANAGER, {"retail_percentage": 30})
    except LockedPeriod as e:
        print(f"   Further edits refused: {e}")

    stats = engine.submission_stats(march)
    print(f"   Overall submission: {stats['overall_percentage']}%")
    for division in stats['division_stats']:
        print(f"     {division['division_name']}: {division['submitted']}/{division['total']}")

    # 6. Underperformance
    print("\n6. Checking underperformance...")
    for employee_id in engine.employees:
        flag = engine.underperformance(employee_id, march)
        if flag:
            print(f"   {employee_id}: {flag.severity} ({', '.join(flag.criteria)})")
        else:
            print(f"   {employee_id}: on track")

    # 7. Lock window
    print("\n7. Lock window...")
    for role in [Role.DIVISION_MANAGER, Role.ADMIN]:
        status = engine.lock_status(role, now=datetime(2025, 3, 26, 8, 0))
        print(f"   {role.value} on 2025-03-26: {status['state']}, can edit: {status['can_edit']}")

    # 8. Export
    print("\n8. Exporting shifts...")
    engine.store.to_dataframe().to_csv('shifts_output.csv', index=False)
    print("   ✓ Shifts saved to shifts_output.csv")

    print("\n=== Demo Complete ===")


if __name__ == "__main__":
    main()
