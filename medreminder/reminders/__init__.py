"""Medication reminder engine (scheduler, dispatcher, Celery worker).

Every create/edit of a medication arms exactly one delayed job; the job fires
the dispatcher, which queues a notification and re-arms recurring schedules.
"""
