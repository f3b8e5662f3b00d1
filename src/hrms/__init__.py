"""HRMS attendance timing and payroll deduction engine.

This package is organized by feature modules (attendance, late, payroll, ...)
with a thin Flask controller layer and service/repository layers.
"""
