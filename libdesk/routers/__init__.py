from libdesk.routers import (
    advance_payments,
    auth,
    branches,
    collections,
    expenses,
    hostel_branches,
    hostel_collections,
    hostel_expenses,
    hostel_reports,
    hostel_students,
    products,
    reports,
    schedules,
    seats,
    settings,
    students,
    transactions,
    users,
)

__all__ = [
    'advance_payments',
    'auth',
    'branches',
    'collections',
    'expenses',
    'hostel_branches',
    'hostel_collections',
    'hostel_expenses',
    'hostel_reports',
    'hostel_students',
    'products',
    'reports',
    'schedules',
    'seats',
    'settings',
    'students',
    'transactions',
    'users',
]
