"""
Malaysian payslip generator.

The statutory deduction engine lives in :mod:`payslip_app.core.deductions`;
everything else (form pages, JSON API, storage, rendering) is assembled into a
FastAPI application by :mod:`payslip_app.main`.
"""
