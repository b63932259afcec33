"""
Payroll Kernel

Shared foundation for the payroll and shift reconciliation engine:
- Immutable domain records (schedules, worked shifts, advances, settings)
- Typed exception hierarchy with machine-readable codes
- Structured JSON logging with request-scoped context
"""

__version__ = "0.1.0"
