"""Attendance reconciliation and payroll computation package.

Organized by feature modules (attendance, shifts, corrections, payroll, ...)
with a thin Flask controller layer on top of service/repository layers.
"""
