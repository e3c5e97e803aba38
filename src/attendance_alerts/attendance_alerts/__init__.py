"""Attendance alerts package.

This package is organized by feature modules (attendance, alerts, notifications, ...)
with a thin Flask controller layer and SOLID service/repository layers.
"""
