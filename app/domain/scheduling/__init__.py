"""
Scheduling Domain

Appointment booking, editing, status changes and doctor availability.

Structure:
- availability.py  Pure slot computation (business hours + legacy weekday range)
- schemas.py       Request/response models
- repository.py    Appointment queries
- service.py       Booking rules, emails, webhook and reminders
- router.py        /appointments endpoints and public confirm/cancel links

Times are stored in UTC and exchanged with clients in clinic local time (UTC-3).
"""
