"""Campus Events package.

This package is organized by feature modules (users, clubs, events,
registrations, attendance, feedback) with a thin Flask controller layer and
service/repository layers underneath.
"""
