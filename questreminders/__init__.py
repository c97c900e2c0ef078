"""Quest reminder service (scheduler, matcher, dispatcher, cleanup).

This module is intended to run as a Celery worker with beat enabled. Every
scan walks the user population, works out which recurring quest reminders are
due in each user's local time and sends at most one push batch per user per
local minute.
"""
